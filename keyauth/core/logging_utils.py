from typing import Any, Dict, Optional
from fastapi import Request

MASK = "***MASKED***"

# Fields carrying application API keys (full secrets)
SECRET_FIELDS = ("api", "api_key", "apikey", "x-api-key", "authorization", "token", "password", "secret")

# Fields carrying license keys or device ids (show the tail only)
PARTIAL_FIELDS = ("key", "licensekey", "hwid", "hwids")


def partial_mask(value: str, visible: int = 4) -> str:
    """Keep the last ``visible`` characters of a value."""
    if len(value) <= visible:
        return MASK
    return "*" * (len(value) - visible) + value[-visible:]


def mask_sensitive_data(data: Any, mask_string: str = MASK) -> Any:
    """
    Recursively mask sensitive data in dictionaries and lists.

    Args:
        data: Data structure to mask (dict, list, or other)
        mask_string: String to use for masking

    Returns:
        Masked data structure
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()

            # NEVER mask request_id - it's needed for traceability
            if key_lower in ("requestid", "request_id"):
                masked[key] = value
            elif key_lower in SECRET_FIELDS:
                masked[key] = mask_string
            elif key_lower in PARTIAL_FIELDS:
                if isinstance(value, str):
                    masked[key] = partial_mask(value)
                elif isinstance(value, list):
                    masked[key] = [partial_mask(str(item)) for item in value]
                else:
                    masked[key] = mask_string
            else:
                masked[key] = mask_sensitive_data(value, mask_string)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item, mask_string) for item in data]

    return data


def mask_headers(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Mask sensitive HTTP headers.

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        Dictionary with sensitive headers masked
    """
    sensitive_headers = ("authorization", "x-api-key", "api-key", "cookie", "set-cookie")
    return {
        key: MASK if any(s in key.lower() for s in sensitive_headers) else value
        for key, value in headers.items()
    }


def get_request_id(request: Optional[Request]) -> Optional[str]:
    """Extract request ID from request state."""
    if request and hasattr(request.state, "request_id"):
        return request.state.request_id
    return None


def sanitize_log_message(message: str, **kwargs: Any) -> str:
    """
    Sanitize log message by masking sensitive data in keyword arguments.

    Args:
        message: Base log message
        **kwargs: Additional context to include (will be masked)

    Returns:
        "message | Key: value | ..." with secrets masked, RequestID appended last
    """
    request_id = kwargs.pop('RequestID', None) or kwargs.pop('request_id', None)

    masked_kwargs = mask_sensitive_data(kwargs)

    context_parts = []
    for key, value in masked_kwargs.items():
        if isinstance(value, (dict, list)):
            context_parts.append(f"{key}: {str(value)[:200]}")
        else:
            context_parts.append(f"{key}: {value}")

    formatted_message = message
    if context_parts:
        formatted_message = f"{message} | {' | '.join(context_parts)}"

    # Picked up by RequestIDFormatter
    if request_id:
        formatted_message = f"{formatted_message} | RequestID: {request_id}"

    return formatted_message
