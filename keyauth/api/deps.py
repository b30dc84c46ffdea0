from fastapi import Request
from keyauth.database import Database


def get_database(request: Request) -> Database:
    """
    Store handle created by the application factory.

    Usage in FastAPI:
        @router.post("")
        async def endpoint(database: Database = Depends(get_database)):
            ...
    """
    return request.app.state.database
