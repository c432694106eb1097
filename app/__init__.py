"""
StudentNest
Student-housing marketplace backend.

Architecture:
- FastAPI: REST JSON endpoints under /api
- MongoDB: Users, rooms, bookings, negotiations, meetings, reviews, room shares
- External services: Cloudinary (media), Google Calendar (Meet links),
  Razorpay (payments), SMTP/SMS (OTP delivery)
"""

__version__ = "1.0.0"
