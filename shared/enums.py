import enum


class CareRecipientStatus(str, enum.Enum):
    """Care recipient status values.

    Inactive recipients keep their history but are hidden from day-to-day tracking.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"


class MealType(str, enum.Enum):
    """Meal categories used in Meal records and in the dashboard meal progress."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


class EventType(str, enum.Enum):
    """Kinds of entries returned by the upcoming events feed."""
    APPOINTMENT = "appointment"
    MEDICATION = "medication"


# Meals that count towards the daily meal progress on the dashboard
TRACKED_MEAL_TYPES = (MealType.BREAKFAST, MealType.LUNCH, MealType.DINNER)
