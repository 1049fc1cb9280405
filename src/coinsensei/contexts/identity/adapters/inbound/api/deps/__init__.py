from .current_account import RequireCurrentAccountDependency

__all__ = [
    "RequireCurrentAccountDependency",
]
