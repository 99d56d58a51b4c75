"""Document database access."""

from .mongo import MongoDatabase, get_driver_option, set_driver_option, validate_filter

__all__ = ["MongoDatabase", "get_driver_option", "set_driver_option", "validate_filter"]
