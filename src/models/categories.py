"""
Closed enumerations for entity types, statuses, person roles and task kinds.

Each enumeration has an associated-data lookup (icon, label, examples) and a
``parse`` classmethod used at the store boundary: unknown tags are rejected
with ValidationError instead of being silently defaulted.
"""

from enum import Enum, IntEnum
from typing import Dict, List, NamedTuple, Tuple

from models.exceptions import StoreErrorType, ValidationError
from utils.error_utils import raiseError


class CategoryInfo(NamedTuple):
    """Display data attached to an enumeration member."""

    icon: str
    label: str
    examples: Tuple[str, ...] = ()


class _ParsableEnum(Enum):
    @classmethod
    def parse(cls, value):
        """Coerce ``value`` into a member, raising ValidationError if unknown."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        allowed = ", ".join(member.value for member in cls)
        raiseError(
            StoreErrorType.UNKNOWN_TAG,
            f"Unknown {cls.__name__} '{value}'. Expected one of: {allowed}",
            ValidationError,
        )

    @property
    def info(self) -> CategoryInfo:
        return _INFO[type(self)][self]


class EntityType(_ParsableEnum):
    """Commerce entity types plus internal structural types."""

    PRODUCT = "product"
    SERVICE = "service"
    BOOKING = "booking"
    TRANSPORT = "transport"
    FOOD = "food"
    EVENT = "event"
    RENTAL = "rental"
    DIGITAL = "digital"
    SUBSCRIPTION = "subscription"
    EDUCATION = "education"
    REALESTATE = "realestate"
    HEALTHCARE = "healthcare"

    # Structural types, hidden from default commerce views
    VARIANT = "variant"
    INVENTORY = "inventory"
    STORE = "store"
    CART = "cart"
    SEARCH = "search"

    @property
    def is_structural(self) -> bool:
        return self in STRUCTURAL_TYPES

    @classmethod
    def commerce_types(cls) -> List["EntityType"]:
        return [member for member in cls if member not in STRUCTURAL_TYPES]


STRUCTURAL_TYPES = frozenset(
    {
        EntityType.VARIANT,
        EntityType.INVENTORY,
        EntityType.STORE,
        EntityType.CART,
        EntityType.SEARCH,
    }
)


class EntityStatus(_ParsableEnum):
    ACTIVE = "active"
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PersonRole(_ParsableEnum):
    SELLER = "seller"
    BUYER = "buyer"
    STAFF = "staff"
    DRIVER = "driver"
    HOST = "host"
    INSTRUCTOR = "instructor"
    STUDENT = "student"
    DOCTOR = "doctor"
    PATIENT = "patient"
    LANDLORD = "landlord"
    TENANT = "tenant"
    AGENT = "agent"
    MANAGER = "manager"
    SUPPORT = "support"


class TaskType(_ParsableEnum):
    PAY = "pay"
    CONFIRM = "confirm"
    PREPARE = "prepare"
    PICKUP = "pickup"
    DELIVER = "deliver"
    RECEIVE = "receive"
    RATE = "rate"
    CHECKIN = "checkin"
    SERVE = "serve"
    COMPLETE = "complete"


class TaskStatus(_ParsableEnum):
    """Task lifecycle states."""

    PENDING = "pending"
    PROGRESS = "progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)

    def can_transition_to(self, target: "TaskStatus") -> bool:
        return target in TASK_TRANSITIONS[self]


# Forward only; terminal states have no outgoing edges
TASK_TRANSITIONS: Dict[TaskStatus, frozenset] = {
    TaskStatus.PENDING: frozenset(
        {TaskStatus.PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED}
    ),
    TaskStatus.PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


class TaskPriority(IntEnum):
    NORMAL = 0
    HIGH = 1
    URGENT = 2

    @classmethod
    def parse(cls, value) -> "TaskPriority":
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            raiseError(
                StoreErrorType.UNKNOWN_TAG,
                f"Unknown task priority '{value}'. Expected 0, 1 or 2",
                ValidationError,
            )


_INFO: Dict[type, Dict[Enum, CategoryInfo]] = {
    EntityType: {
        EntityType.PRODUCT: CategoryInfo("📦", "Products", ("Electronics", "Fashion", "Home", "Grocery", "Books")),
        EntityType.DIGITAL: CategoryInfo("💾", "Digital", ("Software", "eBooks", "Music", "Templates", "Courses")),
        EntityType.SERVICE: CategoryInfo("🔧", "Services", ("Plumbing", "Electrical", "Cleaning", "Repair", "Painting")),
        EntityType.SUBSCRIPTION: CategoryInfo("🔄", "Subscriptions", ("Memberships", "SaaS", "Streaming", "Fitness", "Meal Plans")),
        EntityType.BOOKING: CategoryInfo("📅", "Bookings", ("Salon", "Doctor", "Spa", "Consultant", "Restaurant")),
        EntityType.RENTAL: CategoryInfo("🏠", "Rentals", ("Cars", "Equipment", "Bikes", "Tools", "Venues")),
        EntityType.EVENT: CategoryInfo("🎉", "Events", ("Concerts", "Workshops", "Sports", "Festivals", "Shows")),
        EntityType.FOOD: CategoryInfo("🍔", "Food", ("Restaurant", "Cloud Kitchen", "Homemade", "Bakery", "Tiffin")),
        EntityType.TRANSPORT: CategoryInfo("🚗", "Transport", ("Taxi", "Auto", "Courier", "Moving", "Logistics")),
        EntityType.EDUCATION: CategoryInfo("📚", "Education", ("Tutoring", "Courses", "Coaching", "Training", "Classes")),
        EntityType.REALESTATE: CategoryInfo("🏢", "Real Estate", ("Apartments", "Houses", "PG", "Commercial", "Land")),
        EntityType.HEALTHCARE: CategoryInfo("🏥", "Healthcare", ("Consultation", "Lab Tests", "Pharmacy", "Therapy", "Nursing")),
        EntityType.VARIANT: CategoryInfo("🧩", "Variant"),
        EntityType.INVENTORY: CategoryInfo("🗃️", "Inventory"),
        EntityType.STORE: CategoryInfo("🏪", "Store"),
        EntityType.CART: CategoryInfo("🛒", "Cart"),
        EntityType.SEARCH: CategoryInfo("🔍", "Search"),
    },
    EntityStatus: {
        EntityStatus.ACTIVE: CategoryInfo("🟢", "Active"),
        EntityStatus.PENDING: CategoryInfo("🟡", "Pending"),
        EntityStatus.COMPLETED: CategoryInfo("✅", "Completed"),
        EntityStatus.CANCELLED: CategoryInfo("⛔", "Cancelled"),
    },
    PersonRole: {
        PersonRole.SELLER: CategoryInfo("🏪", "Seller"),
        PersonRole.BUYER: CategoryInfo("🛒", "Buyer"),
        PersonRole.STAFF: CategoryInfo("👔", "Staff"),
        PersonRole.DRIVER: CategoryInfo("🚗", "Driver"),
        PersonRole.HOST: CategoryInfo("🎤", "Host"),
        PersonRole.INSTRUCTOR: CategoryInfo("👨‍🏫", "Instructor"),
        PersonRole.STUDENT: CategoryInfo("🎓", "Student"),
        PersonRole.DOCTOR: CategoryInfo("👨‍⚕️", "Doctor"),
        PersonRole.PATIENT: CategoryInfo("🤒", "Patient"),
        PersonRole.LANDLORD: CategoryInfo("🏠", "Landlord"),
        PersonRole.TENANT: CategoryInfo("🔑", "Tenant"),
        PersonRole.AGENT: CategoryInfo("🤝", "Agent"),
        PersonRole.MANAGER: CategoryInfo("👨‍💼", "Manager"),
        PersonRole.SUPPORT: CategoryInfo("🎧", "Support"),
    },
    TaskType: {
        TaskType.PAY: CategoryInfo("💳", "Payment", ("Pay for order",)),
        TaskType.CONFIRM: CategoryInfo("✅", "Confirm", ("Accept order",)),
        TaskType.PREPARE: CategoryInfo("👨‍🍳", "Prepare", ("Cook food", "Pack items")),
        TaskType.PICKUP: CategoryInfo("📍", "Pickup", ("Collect package",)),
        TaskType.DELIVER: CategoryInfo("🚚", "Deliver", ("Drop to customer",)),
        TaskType.RECEIVE: CategoryInfo("📬", "Receive", ("Confirm delivery",)),
        TaskType.RATE: CategoryInfo("⭐", "Rate", ("Review order",)),
        TaskType.CHECKIN: CategoryInfo("🎫", "Check-in", ("Arrive at venue",)),
        TaskType.SERVE: CategoryInfo("🛎️", "Serve", ("Provide service",)),
        TaskType.COMPLETE: CategoryInfo("🏁", "Complete", ("Mark done",)),
    },
    TaskStatus: {
        TaskStatus.PENDING: CategoryInfo("⏳", "Pending"),
        TaskStatus.PROGRESS: CategoryInfo("🔄", "In Progress"),
        TaskStatus.COMPLETED: CategoryInfo("✅", "Completed"),
        TaskStatus.CANCELLED: CategoryInfo("⛔", "Cancelled"),
    },
}
