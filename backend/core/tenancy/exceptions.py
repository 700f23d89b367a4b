"""Error taxonomy for the access-control engine.

Security denials (``AuthenticationAbsent``/``AuthorizationDenied``) are collapsed to
"no data" at the API boundary. Configuration and usage errors are always raised to
the caller explicitly.
"""


class TenancyError(Exception):
    pass


class AuthenticationAbsent(TenancyError):
    reason = "AUTHENTICATION_ABSENT"


class AuthorizationDenied(TenancyError):
    reason = "AUTHORIZATION_DENIED"


class PolicyConfigurationError(TenancyError):
    reason = "POLICY_CONFIGURATION"


class ConsentStateConflict(TenancyError):
    pass


class PairingUniquenessConflict(TenancyError):
    pass


class StaleWriteError(TenancyError):
    pass


class InviteConflict(TenancyError):
    pass
