class GlobalMessages:
    # Auth Messages
    AUTH_REQUIRED = "Please log in to continue."
    INVALID_CREDENTIALS = "Could not validate credentials. Please log in again."

    # Booking Messages
    BOOKING_CREATED = "Booking created. The provider has been notified of your request."
    BOOKING_NOT_FOUND = "Booking not found."
    BOOKING_CONFIRMED = "The booking has been confirmed and the client has been notified."
    BOOKING_DECLINED = "The booking request has been removed and the client has been notified."
    BOOKING_STATUS_UNCHANGED = "Booking could not be updated. It may have already been handled."
    PROVIDER_REQUIRED = "A service provider is required."
    PROVIDER_NOT_FOUND = "Service provider not found."
    INVALID_BOOKING_DATE = "Booking date must be a valid calendar date."
    INVALID_BOOKING_TIME = "Booking time must look like 14:30 or 2:30 PM."
    SERVICE_NOT_FOUND = "Service not found for this provider."

    # Message Messages
    MESSAGE_SENT = "Message sent."
    MESSAGE_EMPTY = "Message content cannot be empty."
    RECIPIENT_UNRESOLVED = "Could not find booking details for this conversation."
    MESSAGES_MARKED_READ = "Messages marked as read."

    # Generic
    TRANSPORT_ERROR = "The service is temporarily unavailable. Please try again."
