from .errors import error_response, booking_error_response
from .auth import normalize_email
