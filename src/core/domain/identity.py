"""Account identity validation."""

from src.core.errors import InvalidAccount


def validate_account(account: object) -> str:
    """
    Identity — непустая строка (address-like key).

    Raises:
        InvalidAccount: Если account не строка или пустая строка
    """
    if not isinstance(account, str):
        raise InvalidAccount(account, "identity must be a string")
    if not account.strip():
        raise InvalidAccount(account, "identity must not be empty")
    return account
