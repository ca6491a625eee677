from .routes import signup_router, settings_router
from .service import SignupOrchestrator, SignupOutcome, SignupResult, BusinessService

__all__ = [
    "signup_router",
    "settings_router",
    "SignupOrchestrator",
    "SignupOutcome",
    "SignupResult",
    "BusinessService",
]
