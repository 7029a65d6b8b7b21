# Domestic (Egypt) cities whose bookings mark a guest as a local resident.
# Matched as lowercase substrings, so "New Cairo" and "Giza Plateau" both count.

LOCAL_CITIES = (
    "cairo",
    "alexandria",
    "giza",
    "luxor",
    "aswan",
    "hurghada",
    "sharm el sheikh",
)


def is_local_city(city: str | None) -> bool:
    name = (city or "").strip().lower()
    if not name:
        return False
    return any(local in name for local in LOCAL_CITIES)
