"""
Shared log message helpers.
"""


def format_success(message: str) -> str:
    return f"✅ {message}"


def format_warning(message: str) -> str:
    return f"⚠️ {message}"


def format_info(message: str) -> str:
    return f"ℹ️ {message}"


def format_link(message: str) -> str:
    return f"🔗 {message}"


def format_session(message: str) -> str:
    return f"🔒 {message}"


def format_request_failure(path: str, reason: object) -> str:
    return format_warning(f"{path} request failed: {reason}")
