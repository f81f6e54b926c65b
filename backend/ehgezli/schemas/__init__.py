from ehgezli.schemas.user import UserCreate, UserResponse, UserUpdate
from ehgezli.schemas.auth import LoginRequest, Token, MessageResponse
from ehgezli.schemas.restaurant import RestaurantCreate, RestaurantResponse, RestaurantProfileResponse
from ehgezli.schemas.branch import BranchCreate, BranchResponse, BranchListItem, BranchSearchFilter
from ehgezli.schemas.booking import BookingCreate, BookingResponse, BookingDetailResponse

__all__ = [
    "UserCreate", "UserResponse", "UserUpdate",
    "LoginRequest", "Token", "MessageResponse",
    "RestaurantCreate", "RestaurantResponse", "RestaurantProfileResponse",
    "BranchCreate", "BranchResponse", "BranchListItem", "BranchSearchFilter",
    "BookingCreate", "BookingResponse", "BookingDetailResponse",
]
