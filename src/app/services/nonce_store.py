import secrets

MIN_NONCE_BYTES = 16


class NonceStore:
    """
    Issues replay-protection nonces.

    Uniqueness is probabilistic at this entropy; single use is enforced by the
    challenge's used flag, not here.
    """

    def __init__(self, num_bytes: int = 32):
        if num_bytes < MIN_NONCE_BYTES:
            raise ValueError(f"Nonces need at least {MIN_NONCE_BYTES} bytes of entropy")
        self.num_bytes = num_bytes

    def issue(self) -> str:
        return secrets.token_hex(self.num_bytes)
