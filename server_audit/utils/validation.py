"""Input validation utilities."""

# Characters that could enable shell or path injection
SUSPICIOUS_CHARS = ["/", "\\", ";", "&", "|", "$", "`", " ", "\n", "\r", "\x00"]


def validate_host(host: str) -> str:
    """Validate a host name or address.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    for char in SUSPICIOUS_CHARS:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host


def validate_user(user: str) -> str:
    """Validate a remote user name.

    Raises:
        ValueError: If user name is empty or contains invalid characters
    """
    if not user:
        raise ValueError("User cannot be empty")

    for char in SUSPICIOUS_CHARS:
        if char in user:
            raise ValueError(f"User contains invalid characters: {user!r}")

    return user


def validate_port(port: int) -> int:
    """Validate a TCP port number.

    Raises:
        ValueError: If port is outside 1-65535
    """
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port
