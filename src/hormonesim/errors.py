# src/hormonesim/errors.py


class HormoneSimError(Exception):
    """Base class for errors raised by the simulation engine."""


class InvalidConfigurationError(HormoneSimError, ValueError):
    """A compound, blend, dose or treatment failed validation."""


class UnsupportedRouteError(InvalidConfigurationError):
    """A compound was asked for PK constants of a route it is not given by."""

    def __init__(self, compound_id: str, route):
        self.compound_id = compound_id
        self.route = route
        name = getattr(route, "value", route)
        super().__init__(f"Route '{name}' is not supported for compound '{compound_id}'.")


class UnknownSubstanceError(InvalidConfigurationError, KeyError):
    """A compound or blend id is not present in the catalog."""

    def __init__(self, substance_id: str):
        self.substance_id = substance_id
        super().__init__(f"Unknown compound or blend '{substance_id}'.")

    def __str__(self):
        return str(self.args[0])
