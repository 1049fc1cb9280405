from .auth_flow import AuthFlowConfig, load_auth_flow_config

__all__ = [
    "AuthFlowConfig",
    "load_auth_flow_config",
]
