"""Application constants."""

USER_AGENT = "teammap/1.0 (+team-map-pipeline; contact: configured-email)"
STAGES = (
    "analyze",
    "geocode",
    "merge",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
GEOCODE_RESULTS_PATH = "intermediate/geocode_results.json"
TEAM_DATASET_PATH = "out/team.json"
REPORTS_DIR = "out/reports"
NOT_FOUND_ERROR = "No results found"
