from .hs256_access_token_codec import Hs256AccessTokenCodec

__all__ = [
    "Hs256AccessTokenCodec",
]
