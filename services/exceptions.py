class GradingError(Exception):
    """Business-rule failure raised by the grading / report services"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GradingError):
    """Referenced entity is missing or belongs to another school"""
    status_code = 404


class ValidationFailure(GradingError):
    """Marks out of range or required fields missing"""
    status_code = 400
