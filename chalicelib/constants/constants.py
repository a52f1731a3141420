PROMOTION_DAYS = 7

# Chalice does not accept schedules shorter than one minute
PROMOTION_SWEEP_RATE_MINUTES = 1
LOCAL_PROMOTION_SWEEP_INTERVAL_SECONDS = 30

DEFAULT_PAGE_SIZE = 25

UPLOADS_BUCKET_NAME = 'eats-marketplace-uploads'
EMAIL_FROM = 'Eats Marketplace <no-reply@eats-marketplace.com>'
VERIFICATION_TEMPLATE = 'id-verification'
VERIFICATION_SUBJECT = 'Verify Your Email'

JWT_ALGORITHM = 'HS256'


class UserRole:
    owner = 'Owner'
    client = 'Client'
    delivery = 'Delivery'

    all = (owner, client, delivery)


class OrderStatus:
    pending = 'Pending'
    cooking = 'Cooking'
    cooked = 'Cooked'
    picked_up = 'PickedUp'
    delivered = 'Delivered'

    all = (pending, cooking, cooked, picked_up, delivered)


class ErrorType:
    not_found = 'NotFound'
    not_authorized = 'NotAuthorized'
    validation_failed = 'ValidationFailed'
    conflict = 'Conflict'
    unexpected = 'Unexpected'
