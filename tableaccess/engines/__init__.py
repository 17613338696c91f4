from .sqla import SqlAlchemyHandle, SqlAlchemyStatement, create_handle

__all__ = ["SqlAlchemyHandle", "SqlAlchemyStatement", "create_handle"]
