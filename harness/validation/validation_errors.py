"""Typed assertion failure raised by deployed-stack validators."""

from __future__ import annotations


class ValidationAssertionError(AssertionError):
    """A deployed resource does not meet an expected property.

    Subclassing `AssertionError` makes pytest report it as a plain test
    failure, so each validation fails only its own test.

    Attributes:
        check_name: Short name of the failed check.
        resource: Resource identifier the check inspected.
    """

    def __init__(self, message: str, check_name: str, resource: str = ""):
        super().__init__(message)
        self.check_name = check_name
        self.resource = resource


def validation_require(condition: bool, message: str, check_name: str, resource: str = "") -> None:
    """Raise `ValidationAssertionError` unless `condition` holds.

    Args:
        condition: Expectation outcome.
        message: Failure message shown in test output.
        check_name: Short name of the check.
        resource: Inspected resource identifier.

    Returns:
        None: Returns normally when the condition holds.

    Raises:
        ValidationAssertionError: Raised when the condition is false.
    """

    if not condition:
        raise ValidationAssertionError(message, check_name=check_name, resource=resource)
