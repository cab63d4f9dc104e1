"""Route bundles for the API."""
from . import actions, config, system

ROUTERS = [
    config.router,
    actions.router,
    system.router,
]
