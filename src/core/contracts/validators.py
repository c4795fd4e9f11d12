"""
JSON Schema Contract Validators

Модуль для валидации JSON данных согласно формальным JSON Schema контрактам.
Использует библиотеку jsonschema для проверки соответствия данных схемам.

Схемы:
- ledger_config.json (параметры создания ledger от deployment tooling)
- ledger_snapshot.json (экспорт снапшота состояния)
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

from src.core.domain.ledger_state import LedgerConfig


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Автоматически находит схемы в contracts/schema/ относительно корня проекта.
    """

    def __init__(self):
        # Определяем корень проекта (4 уровня вверх от этого файла)
        self._schema_dir = Path(__file__).parent.parent.parent.parent / "contracts" / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'ledger_config')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        return self.validator.iter_errors(data)


class LedgerConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("ledger_config")


class LedgerSnapshotValidator(ContractValidator):
    def __init__(self):
        super().__init__("ledger_snapshot")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_ledger_config(data: Dict[str, Any]) -> None:
    """
    Валидация параметров создания ledger.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    LedgerConfigValidator().validate(data)


def validate_ledger_snapshot(data: Dict[str, Any]) -> None:
    """
    Валидация экспортированного снапшота.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    LedgerSnapshotValidator().validate(data)


def load_ledger_config(path: Union[str, Path]) -> LedgerConfig:
    """
    Загрузка параметров создания ledger из JSON файла.

    Сначала структурная проверка JSON Schema, затем семантическая
    (fee cap и т.д.) через LedgerConfig.

    Raises:
        ValidationError: Если JSON не соответствует схеме
        pydantic.ValidationError: Если нарушены инварианты конфигурации
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    validate_ledger_config(data)
    return LedgerConfig.model_validate(data)


__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "LedgerConfigValidator",
    "LedgerSnapshotValidator",
    "ValidationError",
    "validate_ledger_config",
    "validate_ledger_snapshot",
    "load_ledger_config",
]
