API_VERSION_HEADER = "X-Practice-API-Version"

# Optional per-request Gemini key supplied by the user
GEMINI_KEY_HEADER = "x-gemini-api-key"

# JWT Configuration
JWT_ALGORITHM = "HS256"

# Authentication endpoints configuration
SKIP_AUTH_PATHS = {
    "/openapi.json",
    "/docs",
    "/redoc",
    "/health",
    "/health/liveness",
    "/",
}
