from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/test")
async def api_test():
    return {"message": "API is working", "time": datetime.now(timezone.utc).isoformat()}
