

# Message type constants (stringly-typed protocol; canonical list lives here)

# server -> client (push channel)
T_CLEAR = "clear"
T_LINE = "line"

# primitive kinds (persisted snapshot discriminator)
K_LINE = "line"
K_RECTANGLE = "rectangle"
K_CIRCLE = "circle"

# endpoints
POLL_PATH = "/api/v1/poll"
LISTEN_PATH = "/api/v1/{scene_id}/listen"

# local storage
SCENE_KEY_PREFIX = "scene:"


def scene_storage_key(scene_id: str) -> str:
    return SCENE_KEY_PREFIX + scene_id
