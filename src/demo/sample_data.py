"""
Sample marketplace data for demos and manual testing.

Everything is written through the public services so the demo exercises the
same validation and indexing paths as real input. Orders from the sample
marketplace are stored as structural ``cart`` entities whose ``parent`` is
the listing they were placed against.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from models import TaraiError
from services.entity_service import EntityService
from store.people_store import PeopleStore
from store.task_store import TaskStore
from utils.helpers import now_ms

HOUR_MS = 60 * 60 * 1000

SAMPLE_PEOPLE: Dict[str, str] = {
    name: f"person_{name}"
    for name in (
        "karuppu",
        "selvam",
        "lakshmi",
        "murugan",
        "priya",
        "karthik",
        "raja",
        "ravi",
        "selvi",
        "kumar",
        "arun",
        "meena",
        "bala",
        "venkat",
        "geetha",
        "anand",
    )
}


def _listing(
    entity_id: str,
    type: str,
    title: str,
    value: float,
    quantity: int,
    location: str,
    desc: str,
    tags: str,
    **extra: Any,
) -> Dict[str, Any]:
    return {
        "id": entity_id,
        "type": type,
        "title": title,
        "value": value,
        "quantity": quantity,
        "location": location,
        "status": "active",
        "data": {"desc": desc, "tags": tags, **extra},
    }


def _order(
    entity_id: str,
    title: str,
    parent: str,
    value: float,
    quantity: int,
    location: str,
    **details: Any,
) -> Dict[str, Any]:
    return {
        "id": entity_id,
        "type": "cart",
        "title": title,
        "parent": parent,
        "value": value,
        "quantity": quantity,
        "location": location,
        "status": "pending",
        "data": details,
    }


SAMPLE_ENTITIES: List[Dict[str, Any]] = [
    # Transport
    _listing("memory_taxi_001", "transport", "Karuppu - Airport Taxi Service", 350, 1, "Chennai",
             "Reliable airport pickup and drop", "taxi,airport,chennai"),
    _listing("memory_taxi_002", "transport", "Selvam - City Cab (AC)", 380, 1, "Chennai",
             "AC cab for city travel", "taxi,city,ac"),
    _listing("memory_taxi_003", "transport", "Ravi - Luxury Car Service", 500, 1, "Chennai",
             "Premium luxury car rental with driver", "luxury,car,premium"),
    # Food
    _listing("memory_food_001", "food", "Lakshmi's Kitchen - Homemade Idli Batter", 90, 50, "T Nagar",
             "Fresh homemade idli batter", "idli,homemade,south indian",
             cuisine="South Indian", veg=True),
    _listing("memory_food_002", "food", "Selvi's Tiffin Service - Daily Meals", 150, 30, "Anna Nagar",
             "Daily South Indian meals delivered", "tiffin,meals,daily",
             cuisine="South Indian", veg=True),
    _listing("memory_food_003", "food", "Murugan Biryani - Chicken Biryani", 250, 100, "Mylapore",
             "Authentic Chennai style biryani", "biryani,chicken,non-veg",
             cuisine="Mughlai", veg=False),
    # Services
    _listing("memory_service_001", "service", "Selvam Plumbing - Pipe Repair", 500, 1, "Chennai",
             "Expert plumbing repair and installation", "plumber,pipe,repair"),
    _listing("memory_service_002", "service", "Karthik Electrician - Wiring & Repairs", 600, 1, "Chennai",
             "Electrical wiring and repair services", "electrician,wiring,repair"),
    _listing("memory_service_003", "service", "Raja AC Service - Installation & Repair", 800, 1, "Chennai",
             "AC installation, repair and servicing", "ac,repair,installation"),
    # Bookings
    _listing("memory_booking_001", "booking", "Priya Beauty Salon - Haircut", 300, 1, "Adyar",
             "Professional haircut and styling", "salon,haircut,beauty",
             duration=45, slots=["10:00", "11:00", "14:00", "15:00"]),
    _listing("memory_booking_002", "booking", "Lakshmi Spa - Full Body Massage", 1500, 1, "Nungambakkam",
             "Relaxing full body massage therapy", "spa,massage,relaxation",
             duration=90, slots=["10:00", "12:00", "14:00", "16:00"]),
    # Products
    _listing("memory_product_001", "product", "Murugan Stores - Fresh Vegetables", 50, 200, "Koyambedu",
             "Farm fresh vegetables daily", "vegetables,fresh,organic"),
    _listing("memory_product_002", "product", "Selvi Organic Farm - Fresh Fruits", 100, 150, "Koyambedu",
             "Organic farm fresh fruits", "fruits,organic,fresh"),
    # Education
    _listing("memory_edu_001", "education", "Karthik - Mathematics Tutoring", 500, 1, "Online",
             "Math tutoring for 10th-12th students", "math,tutor,education"),
    _listing("memory_edu_002", "education", "Priya - Spoken English Classes", 400, 1, "Online",
             "Improve your spoken English skills", "english,speaking,classes"),
    # Events
    _listing("memory_event_001", "event", "AR Rahman Concert - Chennai", 2000, 500, "Nehru Stadium",
             "Live concert by AR Rahman", "concert,music,rahman"),
    _listing("memory_event_002", "event", "Stand-up Comedy Night", 500, 100, "Bharatiyar Mandapam",
             "Tamil stand-up comedy show", "comedy,standup,tamil"),
    # Rentals
    _listing("memory_rental_001", "rental", "Karuppu - Self-Drive Car Rental", 1200, 5, "Chennai",
             "Self-drive car rental per day", "car,rental,self-drive"),
    _listing("memory_rental_002", "rental", "Ravi - Bike Rental (Activa)", 300, 10, "Chennai",
             "Activa scooter rental per day", "bike,scooter,rental"),
    # Digital
    _listing("memory_digital_001", "digital", "Karthik - React Native Course", 2999, 1, "Online",
             "Complete React Native development course", "react,mobile,course"),
    # Healthcare
    _listing("memory_health_001", "healthcare", "Dr. Meena - General Consultation", 500, 1, "Apollo Clinic",
             "General health consultation", "doctor,consultation,health", duration=15),
    # Real estate
    _listing("memory_realestate_001", "realestate", "2BHK Apartment - Anna Nagar", 25000, 1, "Anna Nagar",
             "Fully furnished 2BHK for rent", "apartment,2bhk,rent"),
    # Orders
    _order("memory_order_001", "Food Order - Biryani", "memory_food_003", 500, 2, "T Nagar",
           items=[{"variantid": "memory_food_003", "qty": 2}], total=500,
           address="123 T Nagar, Chennai"),
    _order("memory_order_002", "Taxi Booking - Airport", "memory_taxi_001", 350, 1, "Airport",
           pickup="Chennai Airport", drop="T Nagar", time="14:00"),
    _order("memory_order_003", "Salon Appointment", "memory_booking_001", 300, 1, "Adyar",
           slot="14:00", service="Haircut"),
    _order("memory_order_004", "Product Order - Vegetables", "memory_product_001", 250, 5, "Anna Nagar",
           items=[{"variantid": "memory_product_001", "qty": 5}], total=250,
           address="45 Anna Nagar"),
    _order("memory_order_005", "Service Order - AC Repair", "memory_service_003", 800, 1, "T Nagar",
           service="AC servicing", address="78 T Nagar"),
    _order("memory_order_006", "Rental Order - Self Drive Car", "memory_rental_001", 2400, 1, "Chennai",
           days=2, pickup="Central Station"),
    _order("memory_order_007", "Event Order - Concert Ticket", "memory_event_001", 4000, 2, "Nehru Stadium",
           seats=["A12", "A13"], eventDate="2025-01-15"),
]

# (entity id, person, role)
SAMPLE_LINKS: List[tuple] = [
    ("memory_taxi_001", "karuppu", "seller"),
    ("memory_taxi_002", "selvam", "seller"),
    ("memory_taxi_003", "ravi", "seller"),
    ("memory_food_001", "lakshmi", "seller"),
    ("memory_food_002", "selvi", "seller"),
    ("memory_food_003", "murugan", "seller"),
    ("memory_service_001", "selvam", "seller"),
    ("memory_service_002", "karthik", "seller"),
    ("memory_service_003", "raja", "seller"),
    ("memory_booking_001", "priya", "seller"),
    ("memory_booking_001", "geetha", "staff"),
    ("memory_booking_002", "lakshmi", "seller"),
    ("memory_booking_002", "anand", "staff"),
    ("memory_product_001", "murugan", "seller"),
    ("memory_product_002", "selvi", "seller"),
    ("memory_edu_001", "karthik", "instructor"),
    ("memory_edu_002", "priya", "instructor"),
    ("memory_event_001", "raja", "host"),
    ("memory_event_002", "karthik", "host"),
    ("memory_rental_001", "karuppu", "seller"),
    ("memory_rental_002", "ravi", "seller"),
    ("memory_digital_001", "karthik", "seller"),
    ("memory_health_001", "meena", "doctor"),
    ("memory_realestate_001", "raja", "landlord"),
    ("memory_order_001", "kumar", "buyer"),
    ("memory_order_001", "murugan", "seller"),
    ("memory_order_001", "bala", "driver"),
    ("memory_order_002", "arun", "buyer"),
    ("memory_order_002", "karuppu", "driver"),
    ("memory_order_003", "meena", "buyer"),
    ("memory_order_003", "priya", "seller"),
    ("memory_order_003", "geetha", "staff"),
    ("memory_order_004", "arun", "buyer"),
    ("memory_order_004", "murugan", "seller"),
    ("memory_order_004", "venkat", "driver"),
    ("memory_order_005", "kumar", "buyer"),
    ("memory_order_005", "raja", "seller"),
    ("memory_order_005", "anand", "staff"),
    ("memory_order_006", "meena", "buyer"),
    ("memory_order_006", "karuppu", "seller"),
    ("memory_order_007", "kumar", "buyer"),
    ("memory_order_007", "raja", "host"),
    ("memory_order_007", "geetha", "staff"),
]

# ``due_in_hours`` is resolved against the clock when the demo is loaded
SAMPLE_TASKS: List[Dict[str, Any]] = [
    # Food order
    {"id": "task_001", "entity_id": "memory_order_001", "person": "kumar", "type": "pay",
     "title": "Pay for biryani order", "status": "completed", "priority": 2},
    {"id": "task_002", "entity_id": "memory_order_001", "person": "murugan", "type": "confirm",
     "title": "Confirm biryani order", "status": "completed", "priority": 2},
    {"id": "task_003", "entity_id": "memory_order_001", "person": "murugan", "type": "prepare",
     "title": "Prepare chicken biryani x2", "status": "progress", "priority": 1,
     "data": {"items": ["Chicken Biryani x2"], "special": "Extra raita"}},
    {"id": "task_004", "entity_id": "memory_order_001", "person": "bala", "type": "pickup",
     "title": "Collect from restaurant", "priority": 1},
    {"id": "task_005", "entity_id": "memory_order_001", "person": "bala", "type": "deliver",
     "title": "Deliver to customer", "priority": 1,
     "data": {"address": "123 T Nagar", "contact": "+91-9876543210"}},
    {"id": "task_006", "entity_id": "memory_order_001", "person": "kumar", "type": "receive",
     "title": "Confirm delivery received"},
    {"id": "task_007", "entity_id": "memory_order_001", "person": "kumar", "type": "rate",
     "title": "Rate your order"},
    # Taxi booking
    {"id": "task_010", "entity_id": "memory_order_002", "person": "arun", "type": "pay",
     "title": "Pay for taxi ride", "priority": 2, "data": {"amount": 350, "method": "upi"}},
    {"id": "task_011", "entity_id": "memory_order_002", "person": "karuppu", "type": "confirm",
     "title": "Accept ride request", "priority": 2},
    {"id": "task_012", "entity_id": "memory_order_002", "person": "karuppu", "type": "pickup",
     "title": "Pickup passenger", "priority": 1, "due_in_hours": 2},
    {"id": "task_013", "entity_id": "memory_order_002", "person": "arun", "type": "rate",
     "title": "Rate your ride"},
    # Salon appointment
    {"id": "task_020", "entity_id": "memory_order_003", "person": "meena", "type": "pay",
     "title": "Pay for salon booking", "status": "completed", "priority": 2},
    {"id": "task_021", "entity_id": "memory_order_003", "person": "priya", "type": "confirm",
     "title": "Confirm appointment", "status": "completed", "priority": 2},
    {"id": "task_022", "entity_id": "memory_order_003", "person": "meena", "type": "checkin",
     "title": "Check in at salon", "priority": 1, "due_in_hours": 4,
     "data": {"slot": "14:00", "service": "Haircut"}},
    {"id": "task_023", "entity_id": "memory_order_003", "person": "geetha", "type": "serve",
     "title": "Provide haircut service", "priority": 1},
    {"id": "task_024", "entity_id": "memory_order_003", "person": "geetha", "type": "complete",
     "title": "Mark service complete", "priority": 1},
    # Product order
    {"id": "task_030", "entity_id": "memory_order_004", "person": "arun", "type": "pay",
     "title": "Pay for vegetables", "status": "completed", "priority": 2},
    {"id": "task_031", "entity_id": "memory_order_004", "person": "murugan", "type": "prepare",
     "title": "Pack vegetables", "status": "progress", "priority": 1},
    {"id": "task_032", "entity_id": "memory_order_004", "person": "venkat", "type": "deliver",
     "title": "Deliver package", "priority": 1},
    # Service order
    {"id": "task_040", "entity_id": "memory_order_005", "person": "kumar", "type": "pay",
     "title": "Pay for AC service", "status": "completed", "priority": 2},
    {"id": "task_041", "entity_id": "memory_order_005", "person": "anand", "type": "serve",
     "title": "Perform AC servicing", "status": "progress", "priority": 1, "due_in_hours": 1},
    {"id": "task_042", "entity_id": "memory_order_005", "person": "kumar", "type": "rate",
     "title": "Rate service"},
    # Rental order
    {"id": "task_050", "entity_id": "memory_order_006", "person": "meena", "type": "pay",
     "title": "Pay for car rental", "status": "completed", "priority": 2},
    {"id": "task_051", "entity_id": "memory_order_006", "person": "meena", "type": "complete",
     "title": "Return vehicle", "priority": 1, "due_in_hours": 24},
    # Event order
    {"id": "task_060", "entity_id": "memory_order_007", "person": "kumar", "type": "pay",
     "title": "Pay for concert ticket", "status": "completed", "priority": 2},
    {"id": "task_061", "entity_id": "memory_order_007", "person": "geetha", "type": "checkin",
     "title": "Check-in attendee", "priority": 1, "due_in_hours": 48},
    {"id": "task_062", "entity_id": "memory_order_002", "person": "arun", "type": "complete",
     "title": "Cancel ride (optional)", "status": "cancelled"},
]

TEST_QUERIES: List[str] = [
    "Book taxi from airport",
    "Need plumber for leak",
    "Order food",
    "Haircut near me",
    "Math tutor for 10th",
    "Rent a car",
    "Buy vegetables",
    "Concert tickets",
    "Learn React Native",
    "AC repair service",
]


def _task_fields(spec: Dict[str, Any], now: int) -> Dict[str, Any]:
    fields = {
        key: value
        for key, value in spec.items()
        if key not in ("person", "due_in_hours")
    }
    fields["person_id"] = SAMPLE_PEOPLE[spec["person"]]
    if spec.get("due_in_hours") is not None:
        fields["due"] = now + int(spec["due_in_hours"] * HOUR_MS)
    return fields


async def _clear(service: EntityService) -> int:
    entities = await service.list_all(include_structural=True)
    for entity in entities:
        await service.delete(entity.id, cascade=True)
    return len(entities)


async def load_demo_data(
    service: EntityService,
    people: PeopleStore,
    tasks: TaskStore,
    force: bool = False,
) -> Dict[str, int]:
    """Seed the sample marketplace and return how many records were created.

    Loading is skipped when entities already exist, unless ``force`` is set,
    in which case every entity is deleted (with its tasks and links) first.
    A failing item is logged and skipped; the rest still load.
    """
    existing = await service.list_all(include_structural=True)
    if existing and not force:
        logger.info(f"Demo data skipped: {len(existing)} entities already present")
        return {"entities": 0, "links": 0, "tasks": 0, "skipped": len(existing)}

    if existing:
        removed = await _clear(service)
        logger.info(f"Force reload: removed {removed} existing entities")

    counts = {"entities": 0, "links": 0, "tasks": 0, "skipped": 0}

    logger.info(f"Creating {len(SAMPLE_ENTITIES)} demo entities...")
    for spec in SAMPLE_ENTITIES:
        try:
            await service.create(spec)
            counts["entities"] += 1
        except TaraiError as e:
            logger.error(f"Demo entity {spec['id']} failed: {e}")

    for entity_id, person, role in SAMPLE_LINKS:
        try:
            await people.add(entity_id, SAMPLE_PEOPLE[person], role)
            counts["links"] += 1
        except TaraiError as e:
            logger.error(f"Demo link {person} -> {entity_id} failed: {e}")

    now = now_ms()
    for spec in SAMPLE_TASKS:
        try:
            await tasks.create(**_task_fields(spec, now))
            counts["tasks"] += 1
        except TaraiError as e:
            logger.error(f"Demo task {spec['id']} failed: {e}")

    logger.info(
        f"Demo data loaded: {counts['entities']} entities, "
        f"{counts['links']} person links, {counts['tasks']} tasks"
    )
    return counts


async def seed_safely(
    service: EntityService,
    people: PeopleStore,
    tasks: TaskStore,
    force: bool = False,
) -> Optional[Dict[str, int]]:
    """Like ``load_demo_data`` but never raises; returns None on failure."""
    try:
        return await load_demo_data(service, people, tasks, force=force)
    except Exception as e:
        logger.error(f"Failed to load demo data: {e}")
        return None
