# keywords.py
# Keyword vocabularies used for free-text matching against activity names, descriptions and type tags.
# Each table is an immutable pydantic model so a scorer can be built with a smaller fixture in tests.
from __future__ import annotations

from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict


class TimeKeywords(BaseModel):
    model_config = ConfigDict(frozen=True)

    nightlife: Tuple[str, ...] = (
        "bar", "bars", "wine", "wine bar", "cocktail", "cocktails", "pub", "pubs", "lounge",
        "nightclub", "club", "disco", "jazz", "live music", "karaoke", "speakeasy", "rooftop bar",
        "brewery", "taproom", "beer garden", "tavern", "cabaret", "late night", "after dark",
        "evening entertainment",
    )
    late_night: Tuple[str, ...] = (
        "24 hour", "24h", "open late", "late night", "night owl", "after hours", "all night",
        "diner", "kebab", "pizza", "fast food",
    )
    daylight_only: Tuple[str, ...] = (
        "museum", "musée", "museo", "museums", "gallery", "galerie", "galleries", "château",
        "chateau", "castle", "palace", "palais", "church", "cathedral", "basilica", "chapel",
        "abbey", "temple", "mosque", "synagogue", "monument", "memorial", "historic site", "tour",
        "guided tour", "walking tour", "botanical garden", "zoo", "aquarium", "archaeological",
        "ruins", "excavation",
    )
    early_open: Tuple[str, ...] = (
        "café", "cafe", "coffee", "bakery", "boulangerie", "breakfast", "brunch", "patisserie",
        "pastry", "market", "marché", "farmers market", "sunrise", "early bird", "morning",
    )


class VenueKeywords(BaseModel):
    """Category and type-tag vocabularies that decide the capability set of an activity."""
    model_config = ConfigDict(frozen=True)

    indoor_categories: Tuple[str, ...] = ("culture", "shopping", "wellness")
    outdoor_categories: Tuple[str, ...] = ("nature", "leisure-activity")
    outdoor_types: Tuple[str, ...] = (
        "park", "garden", "beach", "viewpoint", "hiking", "outdoor", "terrace", "rooftop",
        "scenic", "trail",
    )
    indoor_types: Tuple[str, ...] = (
        "museum", "gallery", "theater", "cinema", "mall", "covered", "indoor", "spa",
    )
    cooling_types: Tuple[str, ...] = ("ice_cream", "pool", "spa", "cafe", "air_conditioned")
    warming_types: Tuple[str, ...] = ("cafe", "restaurant", "bar", "spa", "sauna")
    viewpoint_types: Tuple[str, ...] = ("viewpoint", "lookout", "observation deck")
    scenic_types: Tuple[str, ...] = ("scenic", "panoramic")
    golden_hour_types: Tuple[str, ...] = ("viewpoint", "scenic", "beach", "rooftop")
    dining_words: Tuple[str, ...] = (
        "restaurant", "cafe", "bar", "bistro", "brasserie", "trattoria", "tavern", "pub", "food",
        "dining",
    )


class PreferenceKeywords(BaseModel):
    model_config = ConfigDict(frozen=True)

    interest_synonyms: Dict[str, Tuple[str, ...]] = {
        "wine": ("wine", "winery", "vineyard", "sommelier", "cellar"),
        "coffee": ("coffee", "cafe", "espresso", "barista", "roaster"),
        "craft_beer": ("brewery", "craft beer", "taproom", "ale", "microbrewery"),
        "fine_dining": ("michelin", "fine dining", "gourmet", "tasting menu", "haute cuisine"),
        "street_food": ("street food", "food truck", "market food", "hawker", "stall"),
        "local_cuisine": ("local", "traditional", "authentic", "regional", "specialty"),
        "art": ("art", "gallery", "exhibition", "museum", "painting", "sculpture"),
        "history": ("history", "historic", "heritage", "ancient", "medieval", "colonial"),
        "architecture": ("architecture", "building", "design", "facade", "structure"),
        "music": ("music", "concert", "jazz", "live music", "orchestra", "symphony"),
        "hiking": ("hiking", "trail", "trek", "walking path", "nature walk"),
        "beach": ("beach", "coast", "seaside", "shore", "oceanfront"),
        "gardens": ("garden", "botanical", "flowers", "plants", "greenhouse"),
        "wildlife": ("wildlife", "animals", "zoo", "safari", "birds"),
        "adventure": ("adventure", "extreme", "thrill", "exciting", "adrenaline"),
        "water_sports": ("surfing", "kayak", "diving", "snorkeling", "swimming"),
        "photography": ("photography", "photo", "scenic", "viewpoint", "panoramic"),
        "wellness": ("spa", "wellness", "massage", "yoga", "meditation", "relax"),
        "nightlife": ("nightlife", "club", "bar", "pub", "lounge", "dancing"),
        "shopping": ("shopping", "boutique", "market", "store", "mall"),
    }
    avoidance_synonyms: Dict[str, Tuple[str, ...]] = {
        "crowds": ("popular", "famous", "tourist", "crowded", "busy", "landmark"),
        "museums": ("museum", "gallery", "exhibition", "art museum"),
        "hiking": ("hiking", "trail", "trek", "climb", "mountain"),
        "nightlife": ("club", "bar", "nightlife", "pub", "party"),
        "shopping": ("shopping", "mall", "store", "boutique", "market"),
        "outdoor": ("outdoor", "nature", "park", "trail", "hiking"),
        "expensive": ("luxury", "fine dining", "upscale", "premium", "exclusive"),
        "spicy_food": ("spicy", "hot", "chili", "pepper"),
        "seafood": ("seafood", "fish", "sushi", "shellfish", "oyster"),
    }
    dining_styles: Dict[str, Tuple[str, ...]] = {
        "street_food": ("street food", "food truck", "stall", "hawker", "market food", "casual", "takeaway"),
        "casual": ("casual", "bistro", "cafe", "diner", "pub food", "family"),
        "mixed": (),
        "fine_dining": ("fine dining", "michelin", "upscale", "gourmet", "tasting menu", "elegant", "sophisticated"),
    }


DEFAULT_TIME_KEYWORDS = TimeKeywords()
DEFAULT_VENUE_KEYWORDS = VenueKeywords()
DEFAULT_PREFERENCE_KEYWORDS = PreferenceKeywords()
