"""Enumerations used across the order and shipping workflow."""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "validation_error"
    BUSINESS_RULE_VIOLATION = "business_rule_violation"
    NOT_FOUND = "not_found"
    REPOSITORY_ERROR = "repository_error"


class OrderStatusType(str, Enum):
    DRAFT = "draft"
    PLACED = "placed"
    PAID = "paid"
    CANCELLED = "cancelled"


class ShippingStatusType(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    FAILED = "failed"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"


class EventType(str, Enum):
    ORDER_PLACED = "order_placed"
    ORDER_PAID = "order_paid"
    SHIPMENT_STARTED = "shipment_started"
    SHIPMENT_DELIVERED = "shipment_delivered"
