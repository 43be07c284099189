class MealPlannerError(Exception):
    """Base exception for the meal planner backend."""

    status_code: int = 500
    code: str = "internal_error"

    def to_detail(self) -> dict:
        """Client-facing error body."""
        return {"code": self.code, "message": str(self)}


class ConfigurationError(MealPlannerError):
    """Raised when static configuration is inconsistent (unknown tier, schema drift)."""

    code = "configuration_error"

    def to_detail(self) -> dict:
        # Never leak configuration internals to clients
        return {"code": self.code, "message": "The service is misconfigured. Please contact support."}


class AuthorizationError(MealPlannerError):
    """Raised when an authenticated caller's tier lacks the required entitlement."""

    status_code = 403
    code = "upgrade_required"

    def __init__(
        self,
        resource: str,
        required_tier: str | None,
        current_tier: str | None,
        reason: str,
        message: str | None = None,
    ):
        self.resource = resource
        self.required_tier = required_tier
        self.current_tier = current_tier
        self.reason = reason
        if message is None:
            if reason == "no_subscription":
                message = "No active subscription"
            elif reason == "subscription_inactive":
                message = "Subscription is not active"
            else:
                message = f"'{resource}' is not available in the {current_tier} tier"
            if required_tier:
                message = f"{message}. Upgrade to {required_tier} to unlock it."
        super().__init__(message)

    def to_detail(self) -> dict:
        return {
            "code": self.code,
            "message": str(self),
            "resource": self.resource,
            "required_tier": self.required_tier,
            "current_tier": self.current_tier,
            "reason": self.reason,
        }


class QuotaExceededError(MealPlannerError):
    """Raised when a usage counter has reached its tier ceiling for the period."""

    status_code = 429
    code = "USAGE_LIMIT_EXCEEDED"

    def __init__(
        self,
        resource: str,
        limit: int,
        current: int,
        tier: str | None,
        upgrade_tier: str | None = None,
    ):
        self.resource = resource
        self.limit = limit
        self.current = current
        self.tier = tier
        self.upgrade_tier = upgrade_tier
        message = f"Usage limit reached for {resource}: {current}/{limit}"
        if upgrade_tier:
            message = f"{message}. Upgrade to {upgrade_tier} for a higher limit."
        super().__init__(message)

    def to_detail(self) -> dict:
        return {
            "code": self.code,
            "message": str(self),
            "resource": self.resource,
            "limit": self.limit,
            "current": self.current,
            "tier": self.tier,
            "upgrade_tier": self.upgrade_tier,
        }


class BrandingValidationError(MealPlannerError):
    """Raised when branding input is malformed (bad color, bad domain)."""

    status_code = 422
    code = "invalid_branding"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)

    def to_detail(self) -> dict:
        return {"code": self.code, "message": str(self), "field": self.field}
