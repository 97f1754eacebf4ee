from typing import Any

from incidentio_mcp.domain.models.result import OperationResult


def unwrap(result: OperationResult) -> Any:
    """
    Return the data of a successful result.

    Raises:
        APIException: The failure rebuilt as an exception, rendered by the
            registered exception handlers
    """
    if not result.ok:
        raise result.to_exception()
    return result.data
