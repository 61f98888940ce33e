"""Response envelope helpers shared by the API routers."""

from typing import Any, Dict, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from taskroster.database.filters import apply_projection


def send_response(status_code: int, message: str, data: Any = None) -> JSONResponse:
    """Build the `{"message": ..., "data": ...}` envelope every endpoint returns."""
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "data": jsonable_encoder(data if data is not None else {})},
    )


def to_document(model: BaseModel, projection: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
    """Serialize a model with its wire field names, then apply a projection."""
    return apply_projection(model.model_dump(by_alias=True, mode="json"), projection)
