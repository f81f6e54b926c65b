from ehgezli.models.user import User
from ehgezli.models.restaurant import RestaurantUser, RestaurantProfile
from ehgezli.models.branch import RestaurantBranch
from ehgezli.models.booking import Booking, BookingSettings, BookingOverride, TimeSlot
from ehgezli.models.saved_branch import SavedBranch
from ehgezli.models.password_reset import PasswordResetToken

__all__ = [
    "User", "RestaurantUser", "RestaurantProfile", "RestaurantBranch",
    "Booking", "BookingSettings", "BookingOverride", "TimeSlot",
    "SavedBranch", "PasswordResetToken",
]
