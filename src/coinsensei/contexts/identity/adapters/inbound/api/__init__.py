from .deps import RequireCurrentAccountDependency
from .routes import build_two_factor_gateway_router

__all__ = [
    "RequireCurrentAccountDependency",
    "build_two_factor_gateway_router",
]
