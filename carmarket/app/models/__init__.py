from .base import Base
from .enums import UserRole, CarStatus, FuelType, GearboxType, BodyType, CarCondition
from .profile import Profile
from .brand import Brand, CarModel
from .car import Car
from .car_image import CarImage
from .favorite import Favorite
from .admin_log import AdminLog
from .notification import Notification
from .auth_user import AuthUser, AuthSession

__all__ = [
    "Base",
    "UserRole",
    "CarStatus",
    "FuelType",
    "GearboxType",
    "BodyType",
    "CarCondition",
    "Profile",
    "Brand",
    "CarModel",
    "Car",
    "CarImage",
    "Favorite",
    "AdminLog",
    "Notification",
    "AuthUser",
    "AuthSession",
]
