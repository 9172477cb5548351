from sqlalchemy import Column, Index, PrimaryKeyConstraint, String, Text
from shortlink_app.database.connection import Base


PRIMARY_KEY_NAME = "pk_urls"
URL_UNIQUE_INDEX_NAME = "uq_urls_url"


class URL(Base):
    """
    A stored short link (UrlRecord).

    - ``id``: the short identifier, primary key
    - ``url``: the original long URL, unique

    Rows are written once and never updated or deleted. Both uniqueness
    constraints carry explicit names so conflicts can be told apart by
    constraint name rather than by error text.
    """
    __tablename__ = "urls"

    id = Column(String(32), nullable=False)
    url = Column(Text, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("id", name=PRIMARY_KEY_NAME),
        # MySQL cannot index TEXT without a prefix length
        Index(URL_UNIQUE_INDEX_NAME, "url", unique=True, mysql_length=255),
    )

    def __repr__(self):
        return f"<URL {self.id} -> {self.url}>"
