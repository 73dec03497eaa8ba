class AmppServiceError(Exception):
    """Базовый класс для ошибок сервиса. status_code используется в HTTP-ответе."""
    status_code = 400

class GoalNotFoundError(AmppServiceError):
    """Цель не найдена или принадлежит другому пользователю."""
    status_code = 404

class InvalidGoalDataError(AmppServiceError):
    """Некорректные данные для операции с целью."""

class InvalidOutboxEventError(AmppServiceError):
    """Событие не удалось сериализовать для outbox."""
    status_code = 500
