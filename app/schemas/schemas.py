"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Field names are camelCase because they are the JSON the clients send and
the keys stored in MongoDB.
"""

import re
from datetime import date
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator


TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")


def clean_phone(value: str) -> str:
    """Strip spaces, dashes and brackets; keep digits and an optional leading +."""
    cleaned = re.sub(r"[\s\-()]", "", value)
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError("Invalid phone number")
    return cleaned


def check_image_urls(urls: list) -> list:
    for url in urls:
        if not url.startswith(("http://", "https://")):
            raise ValueError("Image URLs must be http(s) URLs")
    return urls


def check_password_strength(value: str) -> str:
    if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
        raise ValueError("Password must contain uppercase, lowercase and a number")
    return value


class Schema(BaseModel):
    """Base for all schemas: enums are stored as their plain string values."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    owner = "owner"


class RoomType(str, Enum):
    single = "single"
    shared = "shared"
    studio = "studio"


class AccommodationType(str, Enum):
    pg = "pg"
    hostel = "hostel"
    apartment = "apartment"
    room = "room"


class RoomStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    pending = "pending"
    blocked = "blocked"


class Amenity(str, Enum):
    wifi = "wifi"
    ac = "ac"
    power_backup = "powerBackup"
    security = "security"
    housekeeping = "housekeeping"
    laundry = "laundry"
    parking = "parking"
    gym = "gym"
    library = "library"
    cafeteria = "cafeteria"
    cctv = "cctv"
    geyser = "geyser"
    cooler = "cooler"
    fridge = "fridge"
    tv = "tv"
    bed = "bed"
    wardrobe = "wardrobe"
    study_table = "study_table"
    chair = "chair"


class GenderPreference(str, Enum):
    male = "male"
    female = "female"
    any = "any"


class ElectricityCharges(str, Enum):
    included = "included"
    extra = "extra"
    shared = "shared"


class RoomSort(str, Enum):
    price_asc = "price_asc"
    price_desc = "price_desc"
    rating = "rating"
    newest = "newest"


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"
    rejected = "rejected"


class PaymentStatus(str, Enum):
    pending = "pending"
    pending_confirmation = "pending_confirmation"
    partial = "partial"
    paid = "paid"
    refunded = "refunded"
    failed = "failed"


class AgreementType(str, Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    half_yearly = "half_yearly"
    yearly = "yearly"


class BookingAction(str, Enum):
    approve = "approve"
    confirm = "confirm"
    reject = "reject"
    cancel = "cancel"
    activate = "activate"
    check_in = "check_in"
    complete = "complete"
    check_out = "check_out"
    request_extension = "request_extension"
    approve_extension = "approve_extension"
    reject_extension = "reject_extension"


class StatsTimeframe(str, Enum):
    all = "all"
    week = "week"
    month = "month"
    year = "year"


class OfflinePaymentMethod(str, Enum):
    cash = "cash"
    upi = "upi"
    bank_transfer = "bank_transfer"


class NegotiationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    countered = "countered"
    withdrawn = "withdrawn"


class NegotiationAction(str, Enum):
    accept = "accept"
    reject = "reject"
    counter = "counter"


class NegotiationStudentAction(str, Enum):
    accept = "accept"
    reject = "reject"


class NegotiationRole(str, Enum):
    student = "student"
    owner = "owner"
    auto = "auto"


class MeetingStatus(str, Enum):
    pending = "pending"
    pending_owner_response = "pending_owner_response"
    confirmed = "confirmed"
    rescheduled = "rescheduled"
    declined = "declined"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no_show"


class MeetingType(str, Enum):
    physical = "physical"
    virtual = "virtual"
    phone = "phone"


class MeetingPurpose(str, Enum):
    property_viewing = "property_viewing"
    discussion = "discussion"
    document_verification = "document_verification"
    key_handover = "key_handover"
    inspection = "inspection"


class OwnerMeetingAction(str, Enum):
    accept = "accept"
    confirm = "confirm"
    decline = "decline"
    accept_counter = "accept_counter"
    decline_counter = "decline_counter"


class StudentMeetingAction(str, Enum):
    accept = "accept"
    decline = "decline"
    counter_reschedule = "counter_reschedule"


class MeetingStatusChange(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no_show"


class StayDuration(str, Enum):
    one = "1 month"
    two = "2 months"
    three = "3 months"
    four = "4 months"
    five = "5 months"
    six = "6 months"
    seven = "7 months"
    eight = "8 months"
    nine = "9 months"
    ten = "10 months"
    eleven = "11 months"
    twelve_plus = "12+ months"


class ShareStatus(str, Enum):
    active = "active"
    full = "full"
    completed = "completed"
    cancelled = "cancelled"


class ApplicationStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class ApplicationDecision(str, Enum):
    accepted = "accepted"
    rejected = "rejected"


class ApplicationListType(str, Enum):
    sent = "sent"
    received = "received"
    all = "all"


class SleepSchedule(str, Enum):
    early_bird = "early_bird"
    night_owl = "night_owl"
    flexible = "flexible"


class Cleanliness(str, Enum):
    very_clean = "very_clean"
    moderately_clean = "moderately_clean"
    relaxed = "relaxed"


class StudyHabits(str, Enum):
    silent = "silent"
    quiet = "quiet"
    moderate_noise = "moderate_noise"
    flexible = "flexible"


class SocialLevel(str, Enum):
    very_social = "very_social"
    moderately_social = "moderately_social"
    quiet = "quiet"
    prefer_alone = "prefer_alone"


class CookingFrequency(str, Enum):
    daily = "daily"
    often = "often"
    sometimes = "sometimes"
    rarely = "rarely"


class MusicPreference(str, Enum):
    silent = "silent"
    low_volume = "low_volume"
    moderate = "moderate"
    loud = "loud"


class GuestPolicy(str, Enum):
    no_guests = "no_guests"
    rare_guests = "rare_guests"
    occasional_guests = "occasional_guests"
    frequent_guests = "frequent_guests"


class SmokingTolerance(str, Enum):
    no_smoking = "no_smoking"
    outdoor_only = "outdoor_only"
    tolerant = "tolerant"


class PetFriendly(str, Enum):
    love_pets = "love_pets"
    okay_with_pets = "okay_with_pets"
    no_pets = "no_pets"


class WorkSchedule(str, Enum):
    regular_hours = "regular_hours"
    flexible = "flexible"
    night_shift = "night_shift"
    student_only = "student_only"


class UploadType(str, Enum):
    image = "image"
    video = "video"


class UploadCategory(str, Enum):
    property = "property"
    profile = "profile"
    document = "document"


class BusinessType(str, Enum):
    individual = "individual"
    company = "company"
    partnership = "partnership"


# ============================================================
# COMMON
# ============================================================

class ApiResponse(Schema):
    success: bool = True
    message: Optional[str] = None
    data: Any = None


class Coordinates(Schema):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(Schema):
    email: EmailStr
    phone: str
    password: str = Field(..., min_length=8)
    fullName: str = Field(..., min_length=2, max_length=100)
    role: UserRole
    # Student profile
    collegeId: Optional[str] = None
    collegeName: Optional[str] = None
    course: Optional[str] = None
    yearOfStudy: Optional[int] = Field(None, ge=1, le=6)
    # Owner profile
    businessName: Optional[str] = None
    businessType: Optional[BusinessType] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return clean_phone(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)


class LoginRequest(Schema):
    identifier: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)
    role: Optional[UserRole] = None


class RefreshRequest(Schema):
    refreshToken: Optional[str] = None


class PasswordChangeRequest(Schema):
    currentPassword: str
    newPassword: str = Field(..., min_length=8)

    @field_validator("newPassword")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)


# ============================================================
# OTP SCHEMAS
# ============================================================

class EmailOTPRequest(Schema):
    email: EmailStr


class PhoneOTPRequest(Schema):
    phone: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return clean_phone(v)


class EmailOTPVerify(EmailOTPRequest):
    code: str = Field(..., pattern=r"^\d{4,8}$")


class PhoneOTPVerify(PhoneOTPRequest):
    code: str = Field(..., pattern=r"^\d{4,8}$")


# ============================================================
# ROOM SCHEMAS
# ============================================================

class NearbyUniversity(Schema):
    name: str
    distance: Optional[str] = None
    commute: Optional[str] = None


class NearbyFacility(Schema):
    name: str
    distance: Optional[str] = None
    type: Optional[str] = None


class RoomLocation(Schema):
    address: str = Field(..., min_length=1)
    fullAddress: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=r"^\d{6}$")
    coordinates: Optional[Coordinates] = None
    nearbyUniversities: List[NearbyUniversity] = []
    nearbyFacilities: List[NearbyFacility] = []


class RoomFeatures(Schema):
    area: Optional[int] = Field(None, ge=50, le=2000)
    floor: Optional[int] = Field(None, ge=0, le=50)
    totalFloors: Optional[int] = Field(None, ge=1, le=50)
    furnished: bool = True
    balcony: bool = False
    attached_bathroom: bool = True


class RoomAvailability(Schema):
    isAvailable: bool = True
    availableFrom: Optional[date] = None
    totalRooms: int = Field(1, ge=1)
    availableRooms: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_counts(self):
        if self.availableRooms is None:
            self.availableRooms = self.totalRooms
        if self.availableRooms > self.totalRooms:
            raise ValueError("availableRooms cannot exceed totalRooms")
        return self


class RoomAvailabilityUpdate(Schema):
    """Partial availability change; unset keys keep their stored values."""
    isAvailable: Optional[bool] = None
    availableFrom: Optional[date] = None
    totalRooms: Optional[int] = Field(None, ge=1)
    availableRooms: Optional[int] = Field(None, ge=0)


class RoomRules(Schema):
    guestsAllowed: bool = True
    smokingAllowed: bool = False
    alcoholAllowed: bool = False
    petsAllowed: bool = False
    genderPreference: GenderPreference = GenderPreference.any
    curfewTime: str = "No Curfew"


class RoomCreate(Schema):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=500)
    fullDescription: Optional[str] = Field(None, max_length=5000)
    price: float = Field(..., gt=0)
    images: List[str] = []
    roomType: RoomType
    accommodationType: AccommodationType = AccommodationType.room
    maxSharingCapacity: int = Field(1, ge=1, le=10)
    features: RoomFeatures = RoomFeatures()
    location: RoomLocation
    amenities: List[Amenity] = []
    availability: RoomAvailability = RoomAvailability()
    securityDeposit: float = Field(0, ge=0)
    maintenanceCharges: float = Field(0, ge=0)
    electricityCharges: ElectricityCharges = ElectricityCharges.extra
    rules: RoomRules = RoomRules()
    tags: List[str] = []

    @field_validator("images")
    @classmethod
    def validate_images(cls, v):
        return check_image_urls(v)


class RoomUpdate(Schema):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    fullDescription: Optional[str] = Field(None, max_length=5000)
    price: Optional[float] = Field(None, gt=0)
    images: Optional[List[str]] = None
    roomType: Optional[RoomType] = None
    accommodationType: Optional[AccommodationType] = None
    maxSharingCapacity: Optional[int] = Field(None, ge=1, le=10)
    features: Optional[RoomFeatures] = None
    location: Optional[RoomLocation] = None
    amenities: Optional[List[Amenity]] = None
    availability: Optional[RoomAvailabilityUpdate] = None
    securityDeposit: Optional[float] = Field(None, ge=0)
    maintenanceCharges: Optional[float] = Field(None, ge=0)
    electricityCharges: Optional[ElectricityCharges] = None
    rules: Optional[RoomRules] = None
    tags: Optional[List[str]] = None
    status: Optional[RoomStatus] = None

    @field_validator("images")
    @classmethod
    def validate_images(cls, v):
        if v is None:
            return v
        return check_image_urls(v)


# ============================================================
# BOOKING SCHEMAS
# ============================================================

class BookingCreate(Schema):
    roomId: str
    moveInDate: date
    duration: int = Field(..., ge=1, le=60)
    securityDeposit: Optional[float] = Field(None, ge=0)
    maintenanceCharges: Optional[float] = Field(None, ge=0)
    agreementType: AgreementType = AgreementType.monthly
    notes: Optional[str] = Field(None, max_length=500)


class BookingActionRequest(Schema):
    action: BookingAction
    reason: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)
    refundAmount: Optional[float] = Field(None, ge=0)
    extensionDuration: Optional[int] = None
    extensionId: Optional[str] = None
    damageCharges: Optional[float] = Field(None, ge=0)
    cleaningCharges: Optional[float] = Field(None, ge=0)


class BookingValidateRequest(Schema):
    roomId: str


# ============================================================
# PAYMENT SCHEMAS
# ============================================================

class CreateOrderRequest(Schema):
    bookingId: str


class VerifyPaymentRequest(Schema):
    orderId: str
    paymentId: str
    signature: str


class OfflinePaymentRequest(Schema):
    bookingId: str
    paymentMethod: OfflinePaymentMethod
    transactionId: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class OwnerConfirmPaymentRequest(Schema):
    bookingId: str
    notes: Optional[str] = Field(None, max_length=500)


# ============================================================
# NEGOTIATION SCHEMAS
# ============================================================

class NegotiationCreate(Schema):
    roomId: str
    proposedPrice: float = Field(..., gt=0)
    message: Optional[str] = Field(None, max_length=500)


class NegotiationRespond(Schema):
    action: NegotiationAction
    counterOffer: Optional[float] = Field(None, gt=0)
    message: Optional[str] = Field(None, max_length=500)


class NegotiationStudentRespond(Schema):
    action: NegotiationStudentAction
    message: Optional[str] = Field(None, max_length=500)


# ============================================================
# MEETING SCHEMAS
# ============================================================

class MeetingCreate(Schema):
    propertyId: str
    requestedDate: date
    requestedTime: str = Field(..., pattern=TIME_PATTERN)
    meetingType: Optional[str] = None
    purpose: MeetingPurpose = MeetingPurpose.property_viewing
    message: Optional[str] = Field(None, max_length=500)
    meetingLink: Optional[str] = None


class MeetingOwnerRespond(Schema):
    action: OwnerMeetingAction
    response: Optional[str] = Field(None, max_length=500)
    confirmedDate: Optional[date] = None
    confirmedTime: Optional[str] = Field(None, pattern=TIME_PATTERN)


class CounterProposal(Schema):
    newDate: date
    newTime: str = Field(..., pattern=TIME_PATTERN)
    reason: Optional[str] = Field(None, max_length=500)


class MeetingStudentRespond(Schema):
    action: StudentMeetingAction
    response: Optional[str] = Field(None, max_length=500)
    counterProposal: Optional[CounterProposal] = None


class MeetingReschedule(CounterProposal):
    pass


class MeetingCancel(Schema):
    reason: Optional[str] = Field(None, max_length=500)


class MeetingStatusUpdate(Schema):
    status: MeetingStatusChange
    confirmedDate: Optional[date] = None
    confirmedTime: Optional[str] = Field(None, pattern=TIME_PATTERN)
    studentInterested: Optional[bool] = None
    ownerInterested: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=500)


class MeetingRating(Schema):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class GoogleMeetRequest(Schema):
    googleAccessToken: str = Field(..., min_length=1)


# ============================================================
# REVIEW SCHEMAS
# ============================================================

class ReviewCategories(Schema):
    cleanliness: Optional[int] = Field(None, ge=1, le=5)
    location: Optional[int] = Field(None, ge=1, le=5)
    facilities: Optional[int] = Field(None, ge=1, le=5)
    owner: Optional[int] = Field(None, ge=1, le=5)
    value: Optional[int] = Field(None, ge=1, le=5)


class ReviewCreate(Schema):
    roomId: str
    bookingId: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    categories: ReviewCategories = ReviewCategories()
    stayDuration: StayDuration = StayDuration.three


class ReviewUpdate(Schema):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)
    categories: Optional[ReviewCategories] = None
    stayDuration: Optional[StayDuration] = None


class ReviewOwnerResponse(Schema):
    message: str = Field(..., min_length=1, max_length=500)


# ============================================================
# ROOM SHARING SCHEMAS
# ============================================================

class ShareRequirements(Schema):
    gender: GenderPreference = GenderPreference.any
    ageRange: Optional[str] = None
    preferences: List[str] = []
    occupation: Optional[str] = None


class RoomShareCreate(Schema):
    propertyId: str
    maxParticipants: int = Field(2, ge=2, le=10)
    description: str = Field(..., min_length=10, max_length=1000)
    houseRules: List[str] = []
    requirements: ShareRequirements = ShareRequirements()
    availableFrom: Optional[date] = None
    availableTill: Optional[date] = None


class RoomShareUpdate(Schema):
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    houseRules: Optional[List[str]] = None
    requirements: Optional[ShareRequirements] = None
    availableTill: Optional[date] = None


class ShareApplyRequest(Schema):
    message: Optional[str] = Field(None, max_length=500)


class ShareRespondRequest(Schema):
    applicationId: str
    status: ApplicationDecision
    message: Optional[str] = Field(None, max_length=500)


class InterestRequest(Schema):
    shareId: str


class CleanupRequest(Schema):
    daysInactive: int = Field(7, ge=0)
    forceCleanup: bool = False


class CompatibilityAssessment(Schema):
    sleepSchedule: SleepSchedule
    cleanliness: Cleanliness
    studyHabits: StudyHabits
    socialLevel: SocialLevel
    cookingFrequency: CookingFrequency
    musicPreference: MusicPreference
    guestPolicy: GuestPolicy
    smokingTolerance: SmokingTolerance = SmokingTolerance.no_smoking
    petFriendly: PetFriendly = PetFriendly.no_pets
    workSchedule: WorkSchedule = WorkSchedule.student_only
    sharingPreferences: List[str] = []
    dealBreakers: List[str] = []


class CompatibilityAssessmentUpdate(Schema):
    sleepSchedule: Optional[SleepSchedule] = None
    cleanliness: Optional[Cleanliness] = None
    studyHabits: Optional[StudyHabits] = None
    socialLevel: Optional[SocialLevel] = None
    cookingFrequency: Optional[CookingFrequency] = None
    musicPreference: Optional[MusicPreference] = None
    guestPolicy: Optional[GuestPolicy] = None
    smokingTolerance: Optional[SmokingTolerance] = None
    petFriendly: Optional[PetFriendly] = None
    workSchedule: Optional[WorkSchedule] = None
    sharingPreferences: Optional[List[str]] = None
    dealBreakers: Optional[List[str]] = None


# ============================================================
# STUDENT / OWNER PROFILE SCHEMAS
# ============================================================

class LocationCreate(Schema):
    address: str = Field(..., min_length=1)
    city: Optional[str] = None
    coordinates: Coordinates
    radius: float = Field(5, gt=0, le=50)


class CurrentLocationUpdate(Schema):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    city: Optional[str] = None


class SavedRoomRequest(Schema):
    roomId: str


class StudentPreferences(Schema):
    roomTypePreference: List[str] = []
    budgetMin: int = Field(5000, ge=2000, le=50000)
    budgetMax: int = Field(15000, ge=2000, le=50000)
    locationPreferences: List[str] = []
    amenityPreferences: List[str] = []


class StudentProfileUpdate(Schema):
    fullName: Optional[str] = Field(None, min_length=2, max_length=100)
    collegeId: Optional[str] = None
    collegeName: Optional[str] = None
    course: Optional[str] = None
    yearOfStudy: Optional[int] = Field(None, ge=1, le=6)
    city: Optional[str] = None
    state: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    profilePhoto: Optional[str] = None
    preferences: Optional[StudentPreferences] = None


class OwnerAddress(Schema):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = Field(None, pattern=r"^\d{6}$")
    country: str = "India"


class OwnerProfileUpdate(Schema):
    fullName: Optional[str] = Field(None, min_length=2, max_length=100)
    businessName: Optional[str] = None
    businessType: Optional[BusinessType] = None
    businessDescription: Optional[str] = Field(None, max_length=1000)
    gstNumber: Optional[str] = None
    experience: Optional[int] = Field(None, ge=0)
    address: Optional[OwnerAddress] = None
    city: Optional[str] = None
    state: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    profilePhoto: Optional[str] = None


# ============================================================
# UPLOAD SCHEMAS
# ============================================================

class DeleteUploadRequest(Schema):
    publicId: str
    type: UploadType = UploadType.image
