from . import crud_user
from . import crud_booking
from . import crud_payment
from . import crud_notification
