"""Global constants for the padelrank application."""

# Database-related constants
FIRESTORE_BATCH_LIMIT = 500

# Collection names
RANKINGS_COLLECTION = "rankings"
CONFIG_BACKUPS_COLLECTION = "rankingConfigBackups"
PLAYERS_COLLECTION = "players"
USERS_COLLECTION = "users"

# Fields on 'rankings' documents
RANKING_NAME = "nombre"
RANKING_FORMAT = "format"
RANKING_OWNER_ID = "ownerId"
RANKING_CONFIG = "config"
UNNAMED_RANKING = "Unnamed Ranking"

# Session keys
SESSION_USER_ID = "user_id"
SESSION_IS_ADMIN = "is_admin"

# Migration defaults
MIGRATION_RETRY_ATTEMPTS = 3
MIGRATION_RETRY_BASE_DELAY = 0.5
MIGRATION_RETRY_MAX_DELAY = 8.0
MIGRATION_PREVIEW_SAMPLE_SIZE = 3
