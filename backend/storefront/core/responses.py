# storefront/core/responses.py
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

STATUS_BY_KIND = {
    "auth": status.HTTP_401_UNAUTHORIZED,
    "validation": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "conflict": status.HTTP_409_CONFLICT,
    "store": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def envelope_response(result: dict) -> JSONResponse:
    """`{success, error?, ...}` envelope -> JSON response; the body shape is kept on errors."""
    body = dict(result)
    kind = body.pop("error_kind", None)
    code = status.HTTP_200_OK if body.get("success") else STATUS_BY_KIND.get(kind, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content=jsonable_encoder(body))
