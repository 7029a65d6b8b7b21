from .user import User  # noqa: F401
from .rental import Property, RentalListing, RentalBooking, RentalReview  # noqa: F401
from .meta_event import MetaTrackingEvent  # noqa: F401
