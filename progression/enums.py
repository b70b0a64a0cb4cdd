"""
Enumerations shared by records and services.

Values are the strings stored in persisted records, so they must never be
renamed once released.
"""
from enum import Enum


class StatType(str, Enum):
    """The six attributes every subject carries."""
    STRENGTH = "strength"
    AGILITY = "agility"
    ENDURANCE = "endurance"
    INTELLIGENCE = "intelligence"
    FOCUS = "focus"
    CHARISMA = "charisma"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class ActivityCategory(str, Enum):
    """Grouping of activity types used to scope degradation tracking."""
    WORKOUT = "workout"
    STUDY = "study"
    NONE = "none"


class ActivityType(str, Enum):
    """Loggable activity kinds. Rates live in the stat gain rate table."""
    WORKOUT_WEIGHTS = "workout_weights"
    WORKOUT_CARDIO = "workout_cardio"
    WORKOUT_YOGA = "workout_yoga"
    STUDY_SERIOUS = "study_serious"
    STUDY_CASUAL = "study_casual"
    MEDITATION = "meditation"
    SOCIALIZING = "socializing"
    QUIT_BAD_HABIT = "quit_bad_habit"
    SLEEP_TRACKING = "sleep_tracking"
    DIET_HEALTHY = "diet_healthy"

    @property
    def display_name(self) -> str:
        return _ACTIVITY_DISPLAY_NAMES[self]


_ACTIVITY_DISPLAY_NAMES = {
    ActivityType.WORKOUT_WEIGHTS: "Workout - Weights",
    ActivityType.WORKOUT_CARDIO: "Workout - Cardio",
    ActivityType.WORKOUT_YOGA: "Workout - Yoga/Flexibility",
    ActivityType.STUDY_SERIOUS: "Study - Serious",
    ActivityType.STUDY_CASUAL: "Study - Casual",
    ActivityType.MEDITATION: "Meditation/Mindfulness",
    ActivityType.SOCIALIZING: "Socializing",
    ActivityType.QUIT_BAD_HABIT: "Quit Bad Habit",
    ActivityType.SLEEP_TRACKING: "Sleep Tracking",
    ActivityType.DIET_HEALTHY: "Diet/Healthy Eating",
}
