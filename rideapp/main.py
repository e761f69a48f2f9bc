# rideapp/main.py
import logging
import time
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from .config import Settings, configure_logging, get_settings
from .database import get_session, init_db, is_unique_violation, make_engine
from .auth import CurrentUser, get_app_settings, get_current_user, require_role
from .ratelimit import FixedWindowLimiter
from .roles import Role
from . import auth, payments, rides, seed, users
from . import schemas as s

logger = logging.getLogger(__name__)

HEALTH_PATHS = ("/health", "/healthz", "/api/health")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.app_name, version=settings.version)
    app.state.settings = settings
    app.state.engine = make_engine(settings)
    app.state.limiter = FixedWindowLimiter(
        settings.rate_limit_max, settings.rate_limit_window_seconds
    )

    @app.middleware("http")
    async def _rate_limit(request: Request, call_next):
        if request.url.path in HEALTH_PATHS:
            return await call_next(request)
        limiter: FixedWindowLimiter = request.app.state.limiter
        key = request.client.host if request.client else "unknown"
        allowed, remaining, reset = limiter.hit(key)
        if not allowed:
            logger.warning("rate limit exceeded for %s", key)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests, please try again later."},
                headers={"Retry-After": str(reset)},
            )
        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(limiter.limit)
        response.headers["RateLimit-Remaining"] = str(remaining)
        response.headers["RateLimit-Reset"] = str(reset)
        return response

    @app.middleware("http")
    async def _security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    @app.middleware("http")
    async def _access_log(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.info("%s %s 500", request.method, request.url.path)
            raise
        elapsed = (time.perf_counter() - started) * 1000
        logger.info("%s %s %s %.1fms", request.method, request.url.path,
                    response.status_code, elapsed)
        return response

    # CORS last so it wraps everything, throttled responses included
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------- Errors ----------------
    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(IntegrityError)
    async def _integrity_error(request: Request, exc: IntegrityError):
        if not is_unique_violation(exc):
            return await _unhandled_error(request, exc)
        logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": "Unique constraint failed"},
        )

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # --------------- Lifecycle --------------
    @app.on_event("startup")
    def _startup():
        init_db(app.state.engine)
        if settings.superadmin_password:
            with Session(app.state.engine) as session:
                seed.ensure_superadmin(session, settings)
        logger.info("%s %s started", settings.app_name, settings.version)

    @app.on_event("shutdown")
    def _shutdown():
        logger.info("Shutting down gracefully...")
        app.state.engine.dispose()

    # ---------------- Health ----------------
    @app.get("/health")
    @app.get("/healthz")
    @app.get("/api/health")
    def health():
        return {"status": "ok", "version": settings.version}

    # ---------------- Auth ------------------
    @app.post("/api/register", response_model=s.UserRead, status_code=201)
    @app.post("/api/signup", response_model=s.UserRead, status_code=201)
    def register(
        payload: s.RegisterRequest,
        session: Session = Depends(get_session),
        cfg: Settings = Depends(get_app_settings),
    ):
        user = auth.register(session, cfg, **payload.model_dump())
        return s.UserRead.model_validate(user)

    @app.post("/api/login", response_model=s.LoginResponse)
    def login(
        payload: s.LoginRequest,
        session: Session = Depends(get_session),
        cfg: Settings = Depends(get_app_settings),
    ):
        user, token = auth.login(session, cfg, email=payload.email, password=payload.password)
        return s.LoginResponse(token=token, user=s.UserRead.model_validate(user))

    @app.get("/api/me", response_model=s.UserRead)
    def me(
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        return s.UserRead.model_validate(users.get_user(session, current.id))

    # ---------------- Users -----------------
    @app.get("/api/users", response_model=List[s.UserRead])
    def list_users(
        _: CurrentUser = Depends(require_role(Role.ADMIN)),
        session: Session = Depends(get_session),
    ):
        return [s.UserRead.model_validate(u) for u in users.list_users(session)]

    @app.post("/api/create-admin", response_model=s.UserActionResponse, status_code=201)
    def create_admin(
        payload: s.RegisterRequest,
        _: CurrentUser = Depends(require_role(Role.SUPERADMIN)),
        session: Session = Depends(get_session),
        cfg: Settings = Depends(get_app_settings),
    ):
        admin = auth.create_account(session, cfg, role=Role.ADMIN, **payload.model_dump())
        return s.UserActionResponse(
            message="Admin created successfully", user=s.UserRead.model_validate(admin)
        )

    @app.post("/api/users/{user_id}/promote", response_model=s.UserActionResponse)
    def promote(
        user_id: int,
        _: CurrentUser = Depends(require_role(Role.SUPERADMIN)),
        session: Session = Depends(get_session),
        cfg: Settings = Depends(get_app_settings),
    ):
        user = users.promote_user(session, cfg, user_id)
        return s.UserActionResponse(message="Promoted to ADMIN", user=s.UserRead.model_validate(user))

    @app.delete("/api/users/{user_id}", status_code=204)
    def delete_user(
        user_id: int,
        _: CurrentUser = Depends(require_role(Role.SUPERADMIN)),
        session: Session = Depends(get_session),
        cfg: Settings = Depends(get_app_settings),
    ):
        users.delete_user(session, cfg, user_id)
        return Response(status_code=204)

    # --------------- Vehicles ---------------
    @app.post("/api/vehicles", response_model=s.VehicleRead, status_code=201)
    def create_vehicle(
        payload: s.VehicleCreate,
        _: CurrentUser = Depends(require_role(Role.ADMIN)),
        session: Session = Depends(get_session),
    ):
        return s.VehicleRead.model_validate(rides.create_vehicle(session, payload))

    @app.get("/api/vehicles", response_model=List[s.VehicleRead])
    def list_vehicles(
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        return [s.VehicleRead.model_validate(v) for v in rides.list_vehicles(session, current)]

    @app.get("/api/nearby-vehicles", response_model=s.NearbyVehicles)
    def nearby_vehicles(
        lat: float = Query(ge=-90, le=90),
        lng: float = Query(ge=-180, le=180),
        radius_km: float = Query(default=5, gt=0),
        _: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        vehicles = [s.VehicleRead.model_validate(v) for v in rides.active_vehicles(session)]
        return s.NearbyVehicles(radius_km=radius_km, vehicles=vehicles)

    # ---------------- Rides -----------------
    @app.post("/api/rides", response_model=s.RideRead, status_code=201)
    def create_ride(
        payload: s.RideCreate,
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        return s.RideRead.model_validate(rides.create_ride(session, current, payload))

    @app.get("/api/rides", response_model=List[s.RideRead])
    def list_rides(
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        return [s.RideRead.model_validate(r) for r in rides.list_rides(session, current)]

    # declared before /rides/{ride_id}
    @app.get("/api/rides/all", response_model=List[s.RideReadFull])
    def list_all_rides(
        _: CurrentUser = Depends(require_role(Role.ADMIN)),
        session: Session = Depends(get_session),
    ):
        return [s.RideReadFull.model_validate(r) for r in rides.list_all_rides(session)]

    @app.get("/api/rides/{ride_id}", response_model=s.RideReadFull)
    def get_ride(
        ride_id: int,
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        return s.RideReadFull.model_validate(rides.get_ride(session, ride_id, current))

    @app.patch("/api/rides/{ride_id}/status", response_model=s.RideRead)
    def update_ride_status(
        ride_id: int,
        payload: s.RideStatusUpdate,
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        ride = rides.update_ride_status(session, ride_id, payload.status, current)
        return s.RideRead.model_validate(ride)

    # --------------- Payments ---------------
    @app.post("/api/payments", response_model=s.PaymentResult, status_code=201)
    def create_payment(
        payload: s.PaymentCreate,
        current: CurrentUser = Depends(get_current_user),
        session: Session = Depends(get_session),
    ):
        payment, qr = payments.create_payment(session, current, payload)
        return s.PaymentResult(payment=s.PaymentRead.model_validate(payment), qr_payload=qr)

    return app


app = create_app()
