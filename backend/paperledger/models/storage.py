from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StoredCollection(db.Model):
    """
    One serialized ledger collection (a JSON array of records) per key.

    The whole collection is rewritten on every save. version_id makes the
    write conditional on the version that was read, so a concurrent writer
    in another process raises StaleDataError instead of silently losing
    an update.
    """
    __tablename__ = "stored_collections"

    key = db.Column(db.String(64), primary_key=True)
    payload = db.Column(db.Text, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StoredCollection key={self.key!r} version_id={self.version_id}>"

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "version_id": self.version_id,
            "size_bytes": len(self.payload or ""),
            "updated_at": to_utc_z(self.updated_at),
        }
