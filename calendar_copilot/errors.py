"""Exception taxonomy shared by the engines, the agent and the HTTP layer."""


class InvalidInputError(ValueError):
    """Input rejected before any computation (bad dates, durations, timezones)."""


class CompletionError(RuntimeError):
    """The language-model completion service failed; fatal to the request."""


class IntegrationError(RuntimeError):
    """An external travel/weather API could not be reached or refused the call."""


def describe_error(exc: BaseException) -> str:
    """Plain message for an exception, unwrapping FastAPI ``HTTPException`` details."""
    if isinstance(exc, KeyError) and exc.args:
        return f"Missing required argument: {exc.args[0]}"
    detail = getattr(exc, "detail", None)
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict) and "message" in detail:
        return str(detail["message"])
    return str(exc) or exc.__class__.__name__
