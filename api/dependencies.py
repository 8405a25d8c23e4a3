"""API Dependencies - repositories, services and authentication"""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from uuid import UUID

from application.search import RoomSearchEngine
from application.services import (
    UserService, RoomService, ReservationService, HostReservationService, AvailabilityService
)
from domain.auth import User
from domain.availability import AvailabilityResolver
from domain.exceptions import AuthorizationError
from infrastructure.config import settings
from infrastructure.repositories.in_memory_repositories import (
    InMemoryUserRepository, InMemoryRoomRepository,
    InMemoryGuestReservationRepository, InMemoryHostOpenIntervalRepository
)
from infrastructure.security import decode_access_token
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Initialize repositories
user_repo = InMemoryUserRepository()
reservation_repo = InMemoryGuestReservationRepository()
host_interval_repo = InMemoryHostOpenIntervalRepository()
room_repo = InMemoryRoomRepository(reservation_repo, host_interval_repo)

resolver = AvailabilityResolver()


# Dependency injection
def get_user_service() -> UserService:
    return UserService(user_repo)

def get_room_service() -> RoomService:
    return RoomService(room_repo)

def get_reservation_service() -> ReservationService:
    return ReservationService(reservation_repo, room_repo, resolver)

def get_host_reservation_service() -> HostReservationService:
    return HostReservationService(host_interval_repo, room_repo)

def get_availability_service() -> AvailabilityService:
    return AvailabilityService(room_repo, resolver)

def get_search_engine() -> RoomSearchEngine:
    return RoomSearchEngine(room_repo, resolver, settings.IMAGE_URL_PREFIX)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    users: UserService = Depends(get_user_service)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        subject = payload.get("sub")
        if subject is None:
            raise credentials_exception
        token_data = TokenData(user_id=UUID(subject))
    except (JWTError, ValueError):
        raise credentials_exception

    user = await users.repository.find_by_id(token_data.user_id)
    if user is None:
        raise credentials_exception
    return user.to_public()

async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def ensure_same_user(current_user: User, path_user_id: UUID) -> None:
    """Writes under /users/{id}/... are allowed only for that user"""
    if current_user.user_id != path_user_id:
        raise AuthorizationError()
