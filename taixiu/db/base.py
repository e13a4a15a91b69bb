import os

from sqlmodel import SQLModel, create_engine, Session

from taixiu.config import settings


def make_engine(dsn: str | None = None):
    dsn = dsn or settings.db_dsn
    connect_args = {}
    if dsn.startswith("sqlite"):
        # Tạo thư mục chứa file SQLite nếu chưa có
        path = dsn.split("///", 1)[-1]
        if path and path != ":memory:":
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        # snapshots are written from a worker thread
        connect_args["check_same_thread"] = False
    return create_engine(dsn, echo=False, connect_args=connect_args)


def init_db(engine):
    # import models để SQLModel đăng ký bảng
    from taixiu.db import models  # noqa: F401
    SQLModel.metadata.create_all(engine)


def session_scope(engine) -> Session:
    return Session(engine)
