from typing import Annotated

from fastapi import Depends, Request

from app.core.database import Database


def get_db(request: Request) -> Database:
    """The Database constructed by the app lifespan."""
    return request.app.state.db


DatabaseDep = Annotated[Database, Depends(get_db)]
