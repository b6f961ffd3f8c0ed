from src.core.database.session import async_session, engine, get_db
from src.core.database.base import Base, BaseModel, BigIntPK
from src.core.database.locks import account_transaction

__all__ = ["async_session", "engine", "get_db", "Base", "BaseModel", "BigIntPK", "account_transaction"]
