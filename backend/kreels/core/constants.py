"""
Centralized constants for notifications, push and the scheduler (Encapsulate What Changes).

Change job IDs, limits and channel names here instead of scattering literals across services and routes.
"""
# Scheduler job IDs (must match ids used in main.py add_job)
RETENTION_JOB_ID = "notification_retention"
RETENTION_INTERVAL_HOURS = 24

# Inbox paging (GET /api/notifications): default page size and hard cap
NOTIFICATIONS_DEFAULT_LIMIT = 20
NOTIFICATIONS_MAX_LIMIT = 50

# Comment/reply bodies quote at most this many characters of the comment
BODY_PREVIEW_LENGTH = 50
BODY_PREVIEW_ELLIPSIS = "…"

# Realtime: one channel per user, event name the clients listen for
USER_CHANNEL_PREFIX = "user-"
NOTIFICATION_EVENT = "notification"

# Expo: max messages per /push/send request
EXPO_MAX_CHUNK_SIZE = 100
# Ticket error that means the token is dead and should be deactivated
EXPO_DEVICE_NOT_REGISTERED = "DeviceNotRegistered"
