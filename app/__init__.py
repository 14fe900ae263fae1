# =============================================================================
# app/ - HTTP Layer for Digital Photo Requests
# =============================================================================
# Holds everything that speaks HTTP: the action-dispatch routers under
# routers/ and auth/, the session gate in auth/dependencies.py, the error
# envelope in exceptions.py, and settings in config.py.
#
# Handlers parse the JSON body, pick an action, and hand off to the
# services in core/. No business rules live here.
# =============================================================================
