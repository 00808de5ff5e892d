from ..models.models import DeliveryZone

FREE_DELIVERY_CITIES = ('ташкент', 'tashkent')


def _normalize_city(city):
    return (city or '').strip().lower()


def is_free_delivery_city(city):
    return _normalize_city(city) in FREE_DELIVERY_CITIES


def find_delivery_zone(city):
    # Compared in Python: SQLite's lower() only folds ASCII, zone names are Cyrillic
    name = _normalize_city(city)
    for zone in DeliveryZone.query.filter_by(is_active=True).all():
        if _normalize_city(zone.name) == name:
            return zone
    return None


def calculate_delivery_fee(delivery_type, city=None):
    """Self pickup and Tashkent are free; other cities use their active zone price, else 0."""
    if delivery_type != 'DELIVERY' or not city or is_free_delivery_city(city):
        return 0
    zone = find_delivery_zone(city)
    return zone.price if zone else 0
