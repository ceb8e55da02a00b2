"""Provider authentication helpers."""

from genstudio.auth.signer import TokenSigner, create_token_signer

__all__ = ["TokenSigner", "create_token_signer"]
