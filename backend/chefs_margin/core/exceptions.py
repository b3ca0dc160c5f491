"""Domain exceptions.

Services raise these; ``main.py`` maps them onto HTTP responses.
"""


class ChefsMarginError(Exception):
    """Base class for all service errors."""

    status_code = 400


class EntityNotFoundError(ChefsMarginError):
    """An update or lookup targeted an id that is not in the collection."""

    status_code = 404

    def __init__(self, collection: str, entity_id: str):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} entry '{entity_id}' not found")


class EntityValidationError(ChefsMarginError):
    """An entity failed validation before being committed."""

    status_code = 422


class ActionError(ChefsMarginError):
    """A quick action is missing the fields needed to execute it."""

    status_code = 422


class AnalysisInProgressError(ChefsMarginError):
    """A margin analysis is already running."""

    status_code = 409


class AnalysisError(ChefsMarginError):
    """The LLM call failed or returned something unusable."""

    status_code = 502


class GatewayNotConfiguredError(AnalysisError):
    """No API key is configured for the LLM service."""

    status_code = 503
