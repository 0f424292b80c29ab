from app.repositories.base import DatabaseAdapter, ExecuteResult, RatingStatements
from app.repositories.sqlite import SQLiteAdapter

__all__ = ["DatabaseAdapter", "ExecuteResult", "RatingStatements", "SQLiteAdapter"]
