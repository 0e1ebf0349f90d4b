"""Errors surfaced before a consensus request is dispatched."""


class ConfigurationError(ValueError):
    """The engine cannot run: missing credentials or no models to query."""


class ConsensusDisabledError(ConfigurationError):
    """Consensus mode is switched off in the tenant's policy."""

    def __init__(self, tenant_id: str):
        super().__init__(f"Consensus mode is not enabled for tenant '{tenant_id}'")
        self.tenant_id = tenant_id


class MissingCredentialsError(ConfigurationError):
    """No OpenRouter API key was supplied or found in the environment."""

    def __init__(self):
        super().__init__("OpenRouter API key not configured")
