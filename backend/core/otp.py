import secrets

DEFAULT_OTP_LENGTH = 6


def generate_otp(length: int = DEFAULT_OTP_LENGTH) -> str:
    """Generate a zero-padded numeric one-time code from the OS CSPRNG."""
    if length < 4:
        raise ValueError("OTP length must be at least 4 digits")
    return f"{secrets.randbelow(10 ** length):0{length}d}"
