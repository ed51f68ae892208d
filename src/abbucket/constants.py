BUCKET_SPACE = 100
MIN_BUCKET = 1
MAX_BUCKET = BUCKET_SPACE

# Sentinel values returned in place of an experiment or group name
NO_EXPERIMENT_AVAILABLE = "no experiment available"
NOT_IN_ANY_EXPERIMENT = "not in any experiment"
UNKNOWN_GROUP = "unknown"
GROUP_NOT_CONFIGURED = "group not configured"

STATUS_ASSIGNED = "assigned"
STATUS_NO_EXPERIMENTS = "no_experiments"
STATUS_NOT_ASSIGNED = "not_assigned"
STATUS_NO_GROUPS = "no_groups"
