"""
Route capability table consulted by the AuthorizationGate.

Keys are Flask endpoint names ("<blueprint>.<view function>") or a whole
blueprint name. Anything not listed needs a valid access token.
"""
from models.user import Role
from utils.authz import Capability

ROUTE_CAPABILITIES = {
    "root": Capability.open(),
    "static": Capability.open(),
    "flasgger": Capability.open(),
    "health.health": Capability.open(),
    # Auth
    "auth.login": Capability.open(),
    "auth.register": Capability.open(),
    "auth.refresh": Capability.open(),
    "auth.logout": Capability.authenticated(),
    "auth.logout_all": Capability.authenticated(),
    "auth.profile": Capability.authenticated(),
    # Users
    "users.create_user": Capability.requires(Role.ADMIN),
    "users.list_users": Capability.requires(Role.ADMIN),
    "users.get_user": Capability.authenticated(),
    # owner-or-admin is checked in the view
    "users.update_user": Capability.authenticated(),
    "users.delete_user": Capability.requires(Role.ADMIN),
}
