"""Auth adapters - Admin bearer token issuance and verification."""

from .jwt_tokens import JwtTokenService

__all__ = ["JwtTokenService"]
