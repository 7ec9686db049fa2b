from sqlalchemy.orm import sessionmaker


def build_session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


__all__ = ["build_session_factory"]
