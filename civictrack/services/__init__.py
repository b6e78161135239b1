# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, dispatch and orchestration with side effects.
"""

from .store import ComplaintStore, InMemoryComplaintStore
from .mongodb import MongoComplaintStore
from .audit import AuditTrail
from .notifications import NotificationDispatcher, RecordingDispatcher
from .amqp import AMQPNotificationDispatcher, AMQPConfig, PublishResult, create_amqp_dispatcher
from .complaints import ComplaintService, TransitionResult

__all__ = [
    "ComplaintStore",
    "InMemoryComplaintStore",
    "MongoComplaintStore",
    "AuditTrail",
    "NotificationDispatcher",
    "RecordingDispatcher",
    "AMQPNotificationDispatcher",
    "AMQPConfig",
    "PublishResult",
    "create_amqp_dispatcher",
    "ComplaintService",
    "TransitionResult"
]
