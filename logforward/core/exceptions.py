class ForwarderError(Exception):
    message: str = "Log forwarder error."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class SpecValidationError(ForwarderError):
    """The forwarder spec references something undeclared or is missing
    fields a destination type requires. Carries every problem found."""

    message = "validation failed"

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__(f"validation failed: {'; '.join(self.problems)}")


class BuildError(ForwarderError):
    message = "Unable to generate collector artifacts."


# Raised by ClusterClient implementations


class NotFoundError(ForwarderError):
    message = "Resource not found."


class ConflictError(ForwarderError):
    message = (
        "Operation cannot be fulfilled: the object has been modified; "
        "please apply your changes to the latest version and try again"
    )
