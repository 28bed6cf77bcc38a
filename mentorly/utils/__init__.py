__all__ = [
    "get_current_user",
    "is_email_enabled",
    "send_email",
    "utcnow",
    "ensure_utc",
]


def __getattr__(name):
    if name == "get_current_user":
        from . import security as _security
        return _security.get_current_user
    if name in {"is_email_enabled", "send_email"}:
        from . import email as _email
        return getattr(_email, name)
    if name in {"utcnow", "ensure_utc"}:
        from . import timeutils as _timeutils
        return getattr(_timeutils, name)
    raise AttributeError(f"module 'mentorly.utils' has no attribute '{name}'")
