"""Response helpers shared by the admin routes"""
from fastapi import Response

from ..utils.time import export_timestamp


def export_response(content: str, kind: str) -> Response:
    """JSON download named <kind>-YYYY-MM-DD-HH-MM-SS.json"""
    filename = f"{kind}-{export_timestamp()}.json"
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
