from .in_process_second_factor_verifier import InProcessSecondFactorVerifier

__all__ = [
    "InProcessSecondFactorVerifier",
]
