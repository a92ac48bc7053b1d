"""
Venue suggestions for in-person meetings.
"""

import random
from typing import Dict, Optional, Tuple, Union

from .models import Intent


FALLBACK_LOCATION = "TBD"

LOCATIONS: Dict[Intent, Tuple[str, ...]] = {
    Intent.COFFEE: (
        "Blue Bottle Coffee - Ferry Building",
        "Sightglass Coffee - SOMA",
        "Ritual Coffee Roasters - Mission",
        "Four Barrel Coffee - Mission",
    ),
    Intent.LUNCH: (
        "The Grove - Yerba Buena",
        "Souvla - Hayes Valley",
        "Chipotle - Financial District",
        "Sweetgreen - SOMA",
    ),
    Intent.DINNER: (
        "State Bird Provisions - Fillmore",
        "Nopa - Western Addition",
        "Foreign Cinema - Mission",
        "Zuni Café - Hayes Valley",
    ),
}


def suggest_location(intent: Union[Intent, str], rng: Optional[random.Random] = None) -> str:
    """
    Pick a venue for the intent.

    Pass a seeded ``random.Random`` to make the pick deterministic.
    """
    try:
        options = LOCATIONS.get(Intent(intent), ())
    except ValueError:
        options = ()

    if not options:
        return FALLBACK_LOCATION

    return (rng or random).choice(options)
