# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB complaint store with connection pooling.

Each complaint document embeds its status history in `statusLogs`, so a
status change and its history entry are written by one conditional
single-document update.
"""

import logging
from typing import Any, Dict, List, Optional
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError, DuplicateKeyError
from bson import ObjectId
from bson.errors import InvalidId

from ..domain.errors import ConflictError, NotFound
from ..models.entities import Complaint, StatusLogEntry
from ..models.enums import ComplaintStatus
from .store import ComplaintStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


def _last_logged_status(status: Optional[str]) -> Dict[str, Any]:
    """Filter clause matching documents whose newest history entry ends at `status`."""
    return {"$expr": {"$eq": [{"$arrayElemAt": ["$statusLogs.toStatus", -1]}, status]}}


def entry_to_document(entry: StatusLogEntry) -> Dict[str, Any]:
    """Serialize a history entry for embedding."""
    return {
        "id": entry.id,
        "actorId": entry.actor_id,
        "fromStatus": entry.from_status.value if entry.from_status else None,
        "toStatus": entry.to_status.value,
        "comment": entry.comment,
        "timestamp": entry.timestamp
    }


def entry_from_document(complaint_id: str, doc: Dict[str, Any]) -> StatusLogEntry:
    return StatusLogEntry(
        id=doc["id"],
        complaint_id=complaint_id,
        actor_id=doc["actorId"],
        from_status=doc.get("fromStatus"),
        to_status=doc["toStatus"],
        comment=doc.get("comment"),
        timestamp=doc["timestamp"]
    )


def complaint_fields(complaint: Complaint) -> Dict[str, Any]:
    """Complaint fields written by registration and status changes."""
    return {
        "type": complaint.type,
        "priority": complaint.priority.value,
        "status": complaint.status.value,
        "wardId": complaint.ward_id,
        "submittedById": complaint.submitted_by_id,
        "assignedToId": complaint.assigned_to_id,
        "createdAt": complaint.created_at,
        "deadline": complaint.deadline,
        "resolvedAt": complaint.resolved_at,
        "closedAt": complaint.closed_at,
        "updatedAt": complaint.updated_at
    }


def feedback_fields(complaint: Complaint) -> Dict[str, Any]:
    """Submitter feedback in document form, written apart from status changes."""
    return {
        "feedbackRating": complaint.feedback_rating,
        "feedbackComment": complaint.feedback_comment,
        "feedbackSubmittedAt": complaint.feedback_submitted_at
    }


def complaint_from_document(doc: Dict[str, Any]) -> Complaint:
    return Complaint(
        id=str(doc["_id"]),
        type=doc["type"],
        priority=doc["priority"],
        status=doc["status"],
        ward_id=doc["wardId"],
        submitted_by_id=doc["submittedById"],
        assigned_to_id=doc.get("assignedToId"),
        created_at=doc["createdAt"],
        deadline=doc["deadline"],
        resolved_at=doc.get("resolvedAt"),
        closed_at=doc.get("closedAt"),
        updated_at=doc.get("updatedAt") or doc["createdAt"],
        feedback_rating=doc.get("feedbackRating"),
        feedback_comment=doc.get("feedbackComment"),
        feedback_submitted_at=doc.get("feedbackSubmittedAt")
    )


class MongoComplaintStore(ComplaintStore):
    """Complaint store backed by a MongoDB collection."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 collection_name: str = "complaints", collection: Optional[Collection] = None,
                 max_pool_size: int = 10, server_selection_timeout_ms: int = 5000):
        """
        Initialize the store.

        Args:
            connection_string: MongoDB URI
            database_name: Database name
            collection_name: Collection holding complaints
            collection: Pre-built collection, bypassing client creation
            max_pool_size: Connection pool size
            server_selection_timeout_ms: Server selection timeout
        """
        self.connection_string = connection_string or 'mongodb://localhost:27017/civictrack_dev'
        self.database_name = database_name or 'civictrack_dev'
        self.collection_name = collection_name
        self.max_pool_size = max_pool_size
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self._client: Optional[MongoClient] = None
        self._collection: Optional[Collection] = collection

        logger.info(f"MongoDB complaint store initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    tz_aware=True,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise
        return self._client

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            self._collection = self.client[self.database_name][self.collection_name]
        return self._collection

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._collection = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'database': self.database_name
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def create_indexes(self) -> None:
        """Create indexes used by complaint listings."""
        self.collection.create_index([("wardId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)])
        self.collection.create_index([("submittedById", ASCENDING), ("createdAt", DESCENDING)])
        self.collection.create_index([("assignedToId", ASCENDING), ("status", ASCENDING)])
        self.collection.create_index([("status", ASCENDING), ("deadline", ASCENDING)])
        logger.info("MongoDB complaint indexes created successfully")

    def _object_id(self, complaint_id: str) -> Optional[ObjectId]:
        try:
            return ObjectId(complaint_id)
        except (InvalidId, TypeError):
            return None

    def _raise_missing_or_conflict(self, object_id: ObjectId, complaint_id: str, message: str):
        if self.collection.count_documents({"_id": object_id}, limit=1) == 0:
            raise NotFound(f"Complaint {complaint_id} not found", complaint_id)
        raise ConflictError(message, complaint_id)

    def insert(self, complaint: Complaint, entry: StatusLogEntry) -> Complaint:
        if entry.complaint_id != complaint.id or entry.from_status is not None:
            raise ValueError("Registration entry must start the complaint's history")
        object_id = self._object_id(complaint.id)
        if object_id is None:
            raise ValueError(f"Invalid ObjectId format: {complaint.id}")

        document = complaint_fields(complaint)
        document.update(feedback_fields(complaint))
        document.update({
            "_id": object_id,
            "statusLogs": [entry_to_document(entry)],
            "schemaVersion": SCHEMA_VERSION
        })
        try:
            self.collection.insert_one(document)
        except DuplicateKeyError:
            logger.error(f"Duplicate complaint id {complaint.id}")
            raise ValueError(f"Complaint {complaint.id} already exists")

        logger.info(f"Created complaint document {complaint.id}")
        return complaint

    def get(self, complaint_id: str) -> Optional[Complaint]:
        object_id = self._object_id(complaint_id)
        if object_id is None:
            logger.debug(f"Invalid complaint id {complaint_id}")
            return None
        document = self.collection.find_one({"_id": object_id}, {"statusLogs": 0})
        return complaint_from_document(document) if document else None

    def list_all(self) -> List[Complaint]:
        cursor = self.collection.find({}, {"statusLogs": 0}).sort("createdAt", ASCENDING)
        return [complaint_from_document(doc) for doc in cursor]

    def compare_and_set(self, complaint: Complaint, expected_status: ComplaintStatus,
                        entry: StatusLogEntry) -> Complaint:
        expected = ComplaintStatus(expected_status).value
        if entry.from_status != ComplaintStatus(expected_status) or entry.to_status != complaint.status:
            raise ValueError("Entry does not describe the status change being written")

        object_id = self._object_id(complaint.id)
        if object_id is None:
            raise NotFound(f"Complaint {complaint.id} not found", complaint.id)

        query = {"_id": object_id, "status": expected}
        query.update(_last_logged_status(expected))

        document = self.collection.find_one_and_update(
            query,
            {
                "$set": complaint_fields(complaint),
                "$push": {"statusLogs": entry_to_document(entry)}
            },
            projection={"statusLogs": 0},
            return_document=ReturnDocument.AFTER
        )
        if document is None:
            self._raise_missing_or_conflict(
                object_id, complaint.id, f"Complaint {complaint.id} is no longer {expected}"
            )

        logger.debug(f"Complaint {complaint.id} moved {expected} -> {complaint.status.value}")
        return complaint_from_document(document)

    def save_feedback(self, complaint: Complaint) -> Complaint:
        object_id = self._object_id(complaint.id)
        if object_id is None:
            raise NotFound(f"Complaint {complaint.id} not found", complaint.id)

        completed = [ComplaintStatus.RESOLVED.value, ComplaintStatus.CLOSED.value]
        document = self.collection.find_one_and_update(
            {"_id": object_id, "status": {"$in": completed}},
            {"$set": feedback_fields(complaint)},
            projection={"statusLogs": 0},
            return_document=ReturnDocument.AFTER
        )
        if document is None:
            self._raise_missing_or_conflict(
                object_id, complaint.id, f"Complaint {complaint.id} no longer accepts feedback"
            )

        logger.debug(f"Feedback saved for complaint {complaint.id}")
        return complaint_from_document(document)

    def list_entries(self, complaint_id: str) -> List[StatusLogEntry]:
        object_id = self._object_id(complaint_id)
        if object_id is None:
            return []
        document = self.collection.find_one({"_id": object_id}, {"statusLogs": 1})
        if not document:
            return []
        return [entry_from_document(complaint_id, doc) for doc in document.get("statusLogs", [])]
