class GameError(Exception):
    """Base class for game domain errors."""


class NotFound(GameError, LookupError):
    message = 'Not found'

    def __init__(self, ident=None):
        self.ident = ident
        super().__init__(f"{self.message}: {ident}" if ident is not None else self.message)


class GameNotFound(NotFound):
    message = 'Game not found'


class TemplateNotFound(NotFound):
    message = 'Template not found'


class CategoryNotFound(NotFound):
    message = 'Category not found'


class QuestionNotFound(NotFound):
    message = 'Question not found'


class PlayerNotFound(NotFound):
    message = 'Player not found'


class InvalidTransition(GameError):
    """The event arrived while its precondition does not hold."""


class DuplicateSubmission(InvalidTransition):
    """A player buzzed again for the same question."""


class BoardFull(InvalidTransition):
    """The board already has the maximum number of categories."""


class AccessCodeExhausted(GameError):
    """No free access code could be found within the attempt budget."""


class InvalidPayload(GameError, ValueError):
    """A client-supplied board or settings document is malformed."""
