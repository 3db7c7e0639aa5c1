import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Request
from pymongo import ASCENDING, MongoClient
from pymongo.errors import OperationFailure

from config import Settings

BOOKING_TRIPLE_INDEX = "booking_triple_unique"


class PortalDatabase:
    """Owns the Mongo client and the portal's collections.

    One instance is created per application in the lifespan handler and
    handed to routes through ``get_db``.
    """

    def __init__(self, database, client: Optional[MongoClient] = None):
        self.client = client
        self.services = database["services"]
        self.bookings = database["bookings"]
        self.users = database["user"]
        self.doctors = database["doctors"]
        self.payments = database["payment"]

    @classmethod
    def connect(cls, settings: Settings) -> "PortalDatabase":
        client = MongoClient(settings.mongo_uri, serverSelectionTimeoutMS=settings.mongo_timeout_ms)
        logging.info(f"Connecting to Mongo database {settings.mongo_db_name}")
        return cls(client[settings.mongo_db_name], client=client)

    def ensure_indexes(self):
        # at most one booking per (treatment, date, patient)
        try:
            self.bookings.create_index(
                [("treatment", ASCENDING), ("date", ASCENDING), ("patient", ASCENDING)],
                unique=True,
                name=BOOKING_TRIPLE_INDEX,
            )
        except OperationFailure as e:
            logging.error(
                f"Could not create {BOOKING_TRIPLE_INDEX}: {str(e)}. "
                "Remove bookings that repeat the same treatment, date and patient, then restart."
            )
            raise

    def close(self):
        if self.client is not None:
            self.client.close()


def get_db(request: Request) -> PortalDatabase:
    return request.app.state.db


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    data = dict(doc)
    if isinstance(data.get("_id"), ObjectId):
        data["_id"] = str(data["_id"])
    return data
