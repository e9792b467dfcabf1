from .car import BrandOut, ModelOut, ImageOut, OwnerOut, CarOut, CarAdminOut, CarDetailOut, car_out
from .profile import ProfileOut, ProfileUpdate, UserWithStatsOut, RoleChangeIn
from .auth import SignUpIn, LoginIn, SessionOut, PasswordStrengthIn, PasswordStrengthOut
from .admin import StatusChangeIn, AdminCarEditIn, AnalyticsOut
from .listing import StepValidationIn, StepValidationOut

__all__ = [
    "BrandOut",
    "ModelOut",
    "ImageOut",
    "OwnerOut",
    "CarOut",
    "CarAdminOut",
    "CarDetailOut",
    "car_out",
    "ProfileOut",
    "ProfileUpdate",
    "UserWithStatsOut",
    "RoleChangeIn",
    "SignUpIn",
    "LoginIn",
    "SessionOut",
    "PasswordStrengthIn",
    "PasswordStrengthOut",
    "StatusChangeIn",
    "AdminCarEditIn",
    "AnalyticsOut",
    "StepValidationIn",
    "StepValidationOut",
]
