from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    NORMAL_USER = "normal_user"
    ADMIN = "admin"


class CarStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    SOLD = "Sold"


class FuelType(str, Enum):
    PETROL = "Petrol"
    DIESEL = "Diesel"
    HYBRID = "Hybrid"
    ELECTRIC = "Electric"


class GearboxType(str, Enum):
    MANUAL = "Manual"
    AUTOMATIC = "Automatic"


class BodyType(str, Enum):
    SEDAN = "Sedan"
    SUV = "SUV"
    HATCHBACK = "Hatchback"
    COUPE = "Coupe"
    TRUCK = "Truck"
    VAN = "Van"
    WAGON = "Wagon"
    CONVERTIBLE = "Convertible"
    OTHER = "Other"


class CarCondition(str, Enum):
    NEW = "New"
    EXCELLENT = "Excellent"
    GOOD = "Good"
    NOT_WORKING = "Not Working"


COLORS = (
    "White", "Black", "Silver", "Gray", "Red", "Blue", "Green", "Yellow", "Brown",
    "Gold", "Orange", "Purple", "Beige", "Bronze", "Maroon", "Navy", "Other",
)
CYLINDER_OPTIONS = ("3", "4", "5", "6", "8", "10", "12", "16")


def values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
