SONAR_PROJECT_STATUS_PATH = "/api/qualitygates/project_status"

# SonarQube quality gate statuses
SONAR_STATUS_PASSED = ("OK", "WARN")
SONAR_STATUS_FAILED = ("ERROR",)

# Exit codes reported for invocations that never produced one
EXIT_CODE_TIMEOUT = 124
EXIT_CODE_NOT_EXECUTABLE = 126
EXIT_CODE_NOT_FOUND = 127

# Placeholder syntax for build arguments inside stage commands, e.g. {TMDB_V3_API_KEY}
BUILD_ARG_PATTERN = r"\{([A-Za-z_][A-Za-z0-9_]*)\}"
