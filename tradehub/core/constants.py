"""Global constants for the tradehub group services."""

# Firestore collections
GROUPS_COLLECTION = "groups"
INVITATIONS_COLLECTION = "group_invitations"
JOIN_REQUESTS_COLLECTION = "group_join_requests"

# Realtime Database roots
GROUP_META_ROOT = "group_meta_data"
GROUP_MIRROR_ROOT = "groups"
GROUP_MESSAGES_ROOT = "group_messages"
USERS_ROOT = "users"

FIRESTORE_BATCH_LIMIT = 400

# Group-related constants
MAX_GROUP_MEMBERS = 50
MIN_GROUP_MEMBERS = 2
INVITE_TTL_DAYS = 7
DESCRIPTION_MAX_LENGTH = 100
RECENT_GROUPS_DAYS = 7
EXPLORE_PAGE_SIZE = 100

DEFAULT_DISPLAY_NAME = "Anonymous"
DEFAULT_GROUP_NAME = "Group"

MS_PER_DAY = 24 * 60 * 60 * 1000
