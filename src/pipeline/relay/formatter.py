from .types import ClientResponse, RelayResult


def format_response(answer: str, status_code: int) -> RelayResult:
    # status is passed through even for upstream errors
    return RelayResult(body=ClientResponse(response=answer), status_code=status_code)
