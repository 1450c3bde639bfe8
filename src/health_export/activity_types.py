"""HealthKit workout activity type catalogue."""

import re

_PREFIXES = ("hkworkoutactivitytype", "workout_")

# Lowercased HealthKit suffix -> (stable key, display name)
ACTIVITY_TYPES: dict[str, tuple[str, str]] = {
    "americanfootball": ("american_football", "American Football"),
    "archery": ("archery", "Archery"),
    "australianfootball": ("australian_football", "Australian Football"),
    "badminton": ("badminton", "Badminton"),
    "barre": ("barre", "Barre"),
    "baseball": ("baseball", "Baseball"),
    "basketball": ("basketball", "Basketball"),
    "bowling": ("bowling", "Bowling"),
    "boxing": ("boxing", "Boxing"),
    "cardiodance": ("cardio_dance", "Cardio Dance"),
    "climbing": ("climbing", "Climbing"),
    "cooldown": ("cooldown", "Cooldown"),
    "coretraining": ("core_training", "Core Training"),
    "cricket": ("cricket", "Cricket"),
    "crosscountryskiing": ("cross_country_skiing", "Cross Country Skiing"),
    "crosstraining": ("cross_training", "Cross Training"),
    "curling": ("curling", "Curling"),
    "cycling": ("cycling", "Cycling"),
    "dance": ("dance", "Dance"),
    "discsports": ("disc_sports", "Disc Sports"),
    "downhillskiing": ("downhill_skiing", "Downhill Skiing"),
    "elliptical": ("elliptical", "Elliptical"),
    "equestriansports": ("equestrian_sports", "Equestrian Sports"),
    "fencing": ("fencing", "Fencing"),
    "fishing": ("fishing", "Fishing"),
    "fitnessgaming": ("fitness_gaming", "Fitness Gaming"),
    "flexibility": ("flexibility", "Flexibility"),
    "functionalstrengthtraining": ("functional_training", "Functional Strength Training"),
    "golf": ("golf", "Golf"),
    "gymnastics": ("gymnastics", "Gymnastics"),
    "handball": ("handball", "Handball"),
    "handcycling": ("hand_cycling", "Hand Cycling"),
    "highintensityintervaltraining": ("hiit", "High Intensity Interval Training"),
    "hiking": ("hiking", "Hiking"),
    "hockey": ("hockey", "Hockey"),
    "hunting": ("hunting", "Hunting"),
    "jumprope": ("jump_rope", "Jump Rope"),
    "kickboxing": ("kickboxing", "Kickboxing"),
    "lacrosse": ("lacrosse", "Lacrosse"),
    "martialarts": ("martial_arts", "Martial Arts"),
    "mindandbody": ("mind_and_body", "Mind and Body"),
    "mixedcardio": ("mixed_cardio", "Mixed Cardio"),
    "paddlesports": ("paddle_sports", "Paddle Sports"),
    "pickleball": ("pickleball", "Pickleball"),
    "pilates": ("pilates", "Pilates"),
    "play": ("play", "Play"),
    "preparationandrecovery": ("preparation_and_recovery", "Preparation and Recovery"),
    "racquetball": ("racquetball", "Racquetball"),
    "rowing": ("rowing", "Rowing"),
    "rugby": ("rugby", "Rugby"),
    "running": ("running", "Running"),
    "sailing": ("sailing", "Sailing"),
    "skatingsports": ("skating_sports", "Skating Sports"),
    "snowboarding": ("snowboarding", "Snowboarding"),
    "snowsports": ("snow_sports", "Snow Sports"),
    "soccer": ("soccer", "Soccer"),
    "socialdance": ("social_dance", "Social Dance"),
    "softball": ("softball", "Softball"),
    "squash": ("squash", "Squash"),
    "stairclimbing": ("stair_climbing", "Stair Climbing"),
    "stairs": ("stairs", "Stairs"),
    "steptraining": ("step_training", "Step Training"),
    "surfingsports": ("surfing_sports", "Surfing Sports"),
    "swimbikerun": ("swim_bike_run", "Swim Bike Run"),
    "swimming": ("swimming", "Swimming"),
    "tabletennis": ("table_tennis", "Table Tennis"),
    "taichi": ("tai_chi", "Tai Chi"),
    "tennis": ("tennis", "Tennis"),
    "trackandfield": ("track_and_field", "Track and Field"),
    "traditionalstrengthtraining": ("strength_training", "Traditional Strength Training"),
    "transition": ("transition", "Transition"),
    "volleyball": ("volleyball", "Volleyball"),
    "walking": ("walking", "Walking"),
    "waterfitness": ("water_fitness", "Water Fitness"),
    "waterpolo": ("water_polo", "Water Polo"),
    "watersports": ("water_sports", "Water Sports"),
    "wheelchairrunpace": ("wheelchair_run_pace", "Wheelchair Run Pace"),
    "wheelchairwalkpace": ("wheelchair_walk_pace", "Wheelchair Walk Pace"),
    "wrestling": ("wrestling", "Wrestling"),
    "yoga": ("yoga", "Yoga"),
    "other": ("other", "Other"),
}

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _strip_prefix(identifier: str) -> str:
    value = identifier.strip()
    lower = value.lower()
    for prefix in _PREFIXES:
        if lower.startswith(prefix):
            return value[len(prefix) :]
    return value


def _lookup_key(identifier: str) -> str:
    return _strip_prefix(identifier).replace("_", "").replace(" ", "").lower()


def activity_key(identifier: str) -> str:
    """Return the stable snake_case key for an activity type identifier.

    Accepts ``HKWorkoutActivityTypeRunning``, ``running`` or ``Running``.
    Unknown identifiers are converted from CamelCase.
    """
    known = ACTIVITY_TYPES.get(_lookup_key(identifier))
    if known:
        return known[0]
    stripped = _strip_prefix(identifier)
    if not stripped:
        return "other"
    return _CAMEL_RE.sub("_", stripped).replace(" ", "_").lower()


def activity_name(identifier: str) -> str:
    """Return the human-readable name for an activity type identifier."""
    known = ACTIVITY_TYPES.get(_lookup_key(identifier))
    if known:
        return known[1]
    stripped = _strip_prefix(identifier)
    if not stripped:
        return "Other"
    words = _CAMEL_RE.sub(" ", stripped).replace("_", " ").split()
    return " ".join(word.capitalize() for word in words)
