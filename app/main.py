"""
StudentNest - Main Application

FastAPI backend for the student housing marketplace:
- MongoDB for every entity (users, rooms, bookings, ...)
- JWT access tokens + rotating refresh tokens in an httpOnly cookie
- Razorpay payments, Cloudinary media, Google Meet links, email/SMS OTP

Run: uvicorn app.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from app import __version__
from app.api.routes import api_router
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logger import get_logger
from app.db.mongodb import init_mongo_indexes, test_mongo_connection

settings = get_settings()
log = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="StudentNest",
    description="""
    Student housing marketplace API.

    ## Features
    - **Authentication**: JWT auth for students and owners, email / phone OTP verification
    - **Rooms**: Listings, search, nearby rooms, saved rooms
    - **Bookings**: One room per student, owner approval, check-in / check-out, extensions
    - **Payments**: Razorpay checkout and owner-confirmed offline payments
    - **Negotiations**: Price offers and counter offers
    - **Meetings**: Property visits with Google Meet links
    - **Reviews**: Ratings with owner responses
    - **Room Sharing**: Roommate listings with compatibility scores
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
        log.info("MongoDB indexes initialized")
    except PyMongoError as e:
        log.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "StudentNest", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    mongo_ok = test_mongo_connection()
    return {
        "status": "healthy" if mongo_ok else "degraded",
        "mongodb": "connected" if mongo_ok else "disconnected",
    }
