from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm
from uuid import UUID
from datetime import datetime
from typing import List

from api.schemas import (
    # Users
    RegisterRequest, PatchUserRequest, Token, UserResponse,
    # Rooms
    CreateRoomRequest, PatchRoomRequest, AddRoomImageRequest, RoomResponse,
    RoomImageResponse, RoomSearchRequest, RoomSummaryResponse,
    # Reservations
    CreateReservationRequest, PatchReservationRequest, ReservationResponse,
    CreateHostReservationRequest, PatchHostReservationRequest, HostReservationResponse,
    # Availability
    AvailabilityResponse, IntervalResponse
)
from api.dependencies import (
    get_current_active_user, ensure_same_user,
    get_user_service, get_room_service, get_reservation_service,
    get_host_reservation_service, get_availability_service, get_search_engine
)
from api.exceptions import register_exception_handlers
from api.middleware import CorrelationIdMiddleware
from application.search import RoomSearchEngine
from application.services import (
    UserService, RoomService, ReservationService, HostReservationService, AvailabilityService
)
from domain.auth import User
from domain.availability import AvailabilityDecision
from domain.value_objects import RoomFilter, RoomImage, RoomSummary
from infrastructure.config import settings
from infrastructure.logging_setup import configure_logging

configure_logging(settings)

app = FastAPI(
    title=settings.APP_NAME,
    description="Room rental marketplace: hosts list rooms, guests reserve them",
    version=settings.APP_VERSION
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

# ============================================================================
# HEALTH
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

# ============================================================================
# AUTH & USER ENDPOINTS
# ============================================================================

@app.post("/register", response_model=UserResponse, status_code=201, tags=["Auth"])
async def register(
    request: RegisterRequest,
    service: UserService = Depends(get_user_service)
):
    """Register a new user"""
    return await service.register(
        username=request.username,
        password=request.password,
        email=request.email,
        full_name=request.full_name
    )

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: UserService = Depends(get_user_service)
):
    user = await service.authenticate(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": service.issue_token(user), "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

@app.get("/users/{user_id}", response_model=UserResponse, tags=["Users"])
async def get_user(
    user_id: UUID,
    service: UserService = Depends(get_user_service)
):
    """Get public user profile"""
    return await service.get_user(user_id)

@app.patch("/users/{user_id}", response_model=UserResponse, tags=["Users"])
async def patch_user(
    user_id: UUID,
    request: PatchUserRequest,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_active_user)
):
    """Update own profile; omitted fields are kept"""
    ensure_same_user(current_user, user_id)
    return await service.update_user(user_id, request)

# ============================================================================
# CATALOG ENDPOINTS
# ============================================================================

@app.get("/rooms", response_model=List[RoomSummaryResponse], tags=["Catalog"])
async def get_filtered_rooms(
    request: RoomSearchRequest = Depends(),
    engine: RoomSearchEngine = Depends(get_search_engine)
):
    """Search rooms with query parameters"""
    summaries = await engine.search(_search_to_filter(request))
    return [_summary_to_response(s) for s in summaries]

@app.post("/rooms/search", response_model=List[RoomSummaryResponse], tags=["Catalog"])
async def search_rooms(
    request: RoomSearchRequest,
    engine: RoomSearchEngine = Depends(get_search_engine)
):
    """Search rooms with a JSON filter"""
    summaries = await engine.search(_search_to_filter(request))
    return [_summary_to_response(s) for s in summaries]

@app.get("/rooms/{room_id}", response_model=RoomResponse, tags=["Catalog"])
async def get_room(
    room_id: UUID,
    service: RoomService = Depends(get_room_service)
):
    """Get room by ID"""
    return _room_to_response(await service.get_room(room_id))

@app.get("/rooms/{room_id}/availability", response_model=AvailabilityResponse, tags=["Catalog"])
async def check_availability(
    room_id: UUID,
    start: datetime = Query(..., description="Check-in instant"),
    end: datetime = Query(..., description="Check-out instant"),
    service: AvailabilityService = Depends(get_availability_service)
):
    """Check whether [start, end) can be booked on the room"""
    decision = await service.check(room_id, start, end)
    return _decision_to_response(decision)

@app.get("/rooms/{room_id}/images", response_model=List[RoomImageResponse], tags=["Catalog"])
async def get_room_images(
    room_id: UUID,
    service: RoomService = Depends(get_room_service)
):
    """Images of a room; the first one illustrates search results"""
    images = await service.get_images(room_id)
    return [_image_to_response(i) for i in images]

@app.get("/rooms/{room_id}/images/{image_id}", response_model=RoomImageResponse, tags=["Catalog"])
async def get_room_image(
    room_id: UUID,
    image_id: UUID,
    service: RoomService = Depends(get_room_service)
):
    return _image_to_response(await service.get_image(room_id, image_id))

@app.get("/rooms/{room_id}/host-reservations", response_model=List[HostReservationResponse], tags=["Catalog"])
async def get_room_host_reservations(
    room_id: UUID,
    service: HostReservationService = Depends(get_host_reservation_service)
):
    """Windows during which the host offers the room"""
    host_intervals = await service.get_room_host_reservations(room_id)
    return [_host_reservation_to_response(h) for h in host_intervals]

# ============================================================================
# HOST ROOM ENDPOINTS
# ============================================================================

@app.get("/users/{host_id}/rooms", response_model=List[RoomResponse], tags=["Rooms"])
async def get_host_rooms(
    host_id: UUID,
    service: RoomService = Depends(get_room_service)
):
    """Get all rooms listed by host"""
    rooms = await service.get_rooms_by_host(host_id)
    return [_room_to_response(r) for r in rooms]

@app.get("/users/{host_id}/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def get_host_room(
    host_id: UUID,
    room_id: UUID,
    service: RoomService = Depends(get_room_service)
):
    return _room_to_response(await service.get_host_room(host_id, room_id))

@app.post("/users/{host_id}/rooms", response_model=RoomResponse, status_code=201, tags=["Rooms"])
async def create_room(
    host_id: UUID,
    request: CreateRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """List a new room"""
    ensure_same_user(current_user, host_id)
    room = await service.create_room(
        host_id=host_id,
        title=request.title,
        subtitle=request.subtitle,
        description=request.description,
        price=request.price,
        capacity=request.capacity,
        location=request.location,
        room_type=request.room_type
    )
    return _room_to_response(room)

@app.patch("/users/{host_id}/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def patch_room(
    host_id: UUID,
    room_id: UUID,
    request: PatchRoomRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Update room; omitted fields are kept"""
    ensure_same_user(current_user, host_id)
    return _room_to_response(await service.patch_room(host_id, room_id, request))

@app.delete("/users/{host_id}/rooms/{room_id}", response_model=RoomResponse, tags=["Rooms"])
async def delete_room(
    host_id: UUID,
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_same_user(current_user, host_id)
    return _room_to_response(await service.delete_room(host_id, room_id))

@app.post("/users/{host_id}/rooms/{room_id}/images", response_model=RoomImageResponse, status_code=201, tags=["Rooms"])
async def add_room_image(
    host_id: UUID,
    room_id: UUID,
    request: AddRoomImageRequest,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Attach a stored image to the room"""
    ensure_same_user(current_user, host_id)
    image = await service.add_image(host_id, room_id, request.image_id)
    return _image_to_response(image)

@app.delete("/users/{host_id}/rooms/{room_id}/images/{image_id}", response_model=RoomImageResponse, tags=["Rooms"])
async def remove_room_image(
    host_id: UUID,
    room_id: UUID,
    image_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Detach an image from the room"""
    ensure_same_user(current_user, host_id)
    image = await service.remove_image(host_id, room_id, image_id)
    return _image_to_response(image)

@app.get("/rooms/{room_id}/reservations", response_model=List[ReservationResponse], tags=["Rooms"])
async def get_room_reservations(
    room_id: UUID,
    service: RoomService = Depends(get_room_service),
    current_user: User = Depends(get_current_active_user)
):
    """Guest reservations of a room, for its host"""
    reservations = await service.get_room_reservations(current_user.user_id, room_id)
    return [_reservation_to_response(r) for r in reservations]

# ============================================================================
# GUEST RESERVATION ENDPOINTS
# ============================================================================

@app.get("/users/{user_id}/reservations", response_model=List[ReservationResponse], tags=["Reservations"])
async def get_user_reservations(
    user_id: UUID,
    as_host: bool = Query(False, description="List bookings of the user's rooms instead"),
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservations made by the user, or made on the user's rooms"""
    ensure_same_user(current_user, user_id)
    if as_host:
        reservations = await service.get_reservations_by_host(user_id)
    else:
        reservations = await service.get_reservations_by_guest(user_id)
    return [_reservation_to_response(r) for r in reservations]

@app.get("/users/{user_id}/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    user_id: UUID,
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_same_user(current_user, user_id)
    return _reservation_to_response(await service.get_reservation(user_id, reservation_id))

@app.post("/users/{user_id}/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    user_id: UUID,
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Reserve a room; 409 when the room is not available"""
    ensure_same_user(current_user, user_id)
    reservation = await service.create_reservation(
        guest_id=user_id,
        room_id=request.room_id,
        start=request.date_start,
        end=request.date_end
    )
    return _reservation_to_response(reservation)

@app.patch("/users/{user_id}/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def patch_reservation(
    user_id: UUID,
    reservation_id: UUID,
    request: PatchReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Move a reservation; omitted dates are kept"""
    ensure_same_user(current_user, user_id)
    reservation = await service.update_reservation(
        guest_id=user_id,
        reservation_id=reservation_id,
        start=request.date_start,
        end=request.date_end
    )
    return _reservation_to_response(reservation)

@app.delete("/users/{user_id}/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def delete_reservation(
    user_id: UUID,
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_same_user(current_user, user_id)
    return _reservation_to_response(await service.delete_reservation(user_id, reservation_id))

# ============================================================================
# HOST RESERVATION ENDPOINTS
# ============================================================================

@app.get("/users/{host_id}/host-reservations", response_model=List[HostReservationResponse], tags=["Host Reservations"])
async def get_host_reservations(
    host_id: UUID,
    service: HostReservationService = Depends(get_host_reservation_service)
):
    host_intervals = await service.get_host_reservations(host_id)
    return [_host_reservation_to_response(h) for h in host_intervals]

@app.get("/users/{host_id}/host-reservations/{host_reservation_id}", response_model=HostReservationResponse, tags=["Host Reservations"])
async def get_host_reservation(
    host_id: UUID,
    host_reservation_id: UUID,
    service: HostReservationService = Depends(get_host_reservation_service)
):
    return _host_reservation_to_response(await service.get_host_reservation(host_id, host_reservation_id))

@app.post("/users/{host_id}/host-reservations", response_model=HostReservationResponse, status_code=201, tags=["Host Reservations"])
async def create_host_reservation(
    host_id: UUID,
    request: CreateHostReservationRequest,
    service: HostReservationService = Depends(get_host_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Open own room for guests during a window"""
    ensure_same_user(current_user, host_id)
    host_interval = await service.create_host_reservation(
        host_id=host_id,
        room_id=request.room_id,
        start=request.date_start,
        end=request.date_end
    )
    return _host_reservation_to_response(host_interval)

@app.patch("/users/{host_id}/host-reservations/{host_reservation_id}", response_model=HostReservationResponse, tags=["Host Reservations"])
async def patch_host_reservation(
    host_id: UUID,
    host_reservation_id: UUID,
    request: PatchHostReservationRequest,
    service: HostReservationService = Depends(get_host_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_same_user(current_user, host_id)
    host_interval = await service.update_host_reservation(
        host_id=host_id,
        host_reservation_id=host_reservation_id,
        start=request.date_start,
        end=request.date_end
    )
    return _host_reservation_to_response(host_interval)

@app.delete("/users/{host_id}/host-reservations/{host_reservation_id}", response_model=HostReservationResponse, tags=["Host Reservations"])
async def delete_host_reservation(
    host_id: UUID,
    host_reservation_id: UUID,
    service: HostReservationService = Depends(get_host_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    ensure_same_user(current_user, host_id)
    return _host_reservation_to_response(
        await service.delete_host_reservation(host_id, host_reservation_id)
    )

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _search_to_filter(request: RoomSearchRequest) -> RoomFilter:
    return RoomFilter(
        room_type=request.room_type,
        capacity=request.capacity,
        location=request.location,
        check_in=request.check_in_date,
        check_out=request.check_out_date
    )

def _image_to_response(image: RoomImage) -> RoomImageResponse:
    return RoomImageResponse(
        image_id=image.image_id,
        image_url=f"{settings.IMAGE_URL_PREFIX}{image.image_id}",
        added_at=image.added_at
    )

def _room_to_response(room) -> RoomResponse:
    """Convert Room entity to RoomResponse"""
    return RoomResponse(
        room_id=room.room_id,
        host_id=room.host_id,
        title=room.title,
        subtitle=room.subtitle,
        description=room.description,
        price=room.price,
        capacity=room.capacity,
        location=room.location,
        room_type=room.room_type,
        rate=room.rate,
        images=[_image_to_response(i) for i in room.images],
        created_at=room.created_at,
        modified_at=room.modified_at,
        version=room.version
    )

def _summary_to_response(summary: RoomSummary) -> RoomSummaryResponse:
    return RoomSummaryResponse(
        room_id=summary.room_id,
        title=summary.title,
        subtitle=summary.subtitle,
        image_url=summary.image_url
    )

def _reservation_to_response(reservation) -> ReservationResponse:
    """Convert GuestReservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        room_id=reservation.room_id,
        user_id=reservation.guest_id,
        host_id=reservation.host_id,
        date_start=reservation.interval.start,
        date_end=reservation.interval.end,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        version=reservation.version
    )

def _host_reservation_to_response(host_interval) -> HostReservationResponse:
    """Convert HostOpenInterval entity to HostReservationResponse"""
    return HostReservationResponse(
        host_reservation_id=host_interval.host_reservation_id,
        room_id=host_interval.room_id,
        host_id=host_interval.host_id,
        date_start=host_interval.interval.start,
        date_end=host_interval.interval.end,
        created_at=host_interval.created_at,
        modified_at=host_interval.modified_at,
        version=host_interval.version
    )

def _decision_to_response(decision: AvailabilityDecision) -> AvailabilityResponse:
    return AvailabilityResponse(
        room_id=decision.room_id,
        start=decision.candidate.start,
        end=decision.candidate.end,
        available=decision.available,
        verdict=decision.verdict.value,
        conflicts=[IntervalResponse(start=c.start, end=c.end) for c in decision.conflicts]
    )

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
