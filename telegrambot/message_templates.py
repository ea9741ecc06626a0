from __future__ import annotations

from typing import Any

DATE_FORMAT_HINT = "ДД.ММ.ГГГГ или ДД/ММ/ГГ (например, 01.01.2023 или 01/01/23)"
MAX_MESSAGE_LENGTH = 4096


def _text_message(text: str) -> dict[str, Any]:
    return {"text": text[:MAX_MESSAGE_LENGTH]}


def build_welcome_message() -> list[dict[str, Any]]:
    return [_text_message("Добро пожаловать! Пожалуйста, введите дату в формате ДД.ММ.ГГГГ или ДД/ММ/ГГ:")]


def build_start_required_message() -> list[dict[str, Any]]:
    return [_text_message("Пожалуйста, начните сначала, введя команду /start.")]


def build_date_format_error_message() -> list[dict[str, Any]]:
    return [_text_message(f"Неверный формат даты. Пожалуйста, введите дату в формате {DATE_FORMAT_HINT}.")]


def build_year_format_error_message() -> list[dict[str, Any]]:
    return [_text_message(f"Неверный формат года. Пожалуйста, введите дату в формате {DATE_FORMAT_HINT}.")]


def build_invalid_date_message() -> list[dict[str, Any]]:
    return [_text_message(f"Неверная дата. Пожалуйста, введите дату в формате {DATE_FORMAT_HINT}.")]


def build_identifier_prompt_message() -> list[dict[str, Any]]:
    return [_text_message("Дата принята. Теперь введите Табельный номер:")]


def build_payment_found_message(amount: str) -> list[dict[str, Any]]:
    return [_text_message(f"Запись найдена: Оплата {amount}₽")]


def build_handle_mismatch_message() -> list[dict[str, Any]]:
    return [_text_message("Аккаунт Telegram не соответствует табельному номеру.")]


def build_no_payment_info_message(date: str, identifier: str) -> list[dict[str, Any]]:
    return [
        _text_message(
            f"Запись найдена для даты {date} и табельного номера {identifier}, "
            "но информация об оплате отсутствует."
        )
    ]


def build_not_found_message(date: str, identifier: str) -> list[dict[str, Any]]:
    return [_text_message(f"Не удалось найти запись для даты {date} и табельного номера {identifier}.")]


def build_lookup_unavailable_message() -> list[dict[str, Any]]:
    return [_text_message("Сервис данных временно недоступен. Попробуйте позже, начав с /start.")]


def build_lookup_error_message() -> list[dict[str, Any]]:
    return [_text_message("Произошла ошибка при поиске данных. Попробуйте позже.")]


def build_unexpected_error_message() -> list[dict[str, Any]]:
    return [_text_message("Произошла непредвиденная ошибка. Пожалуйста, начните сначала с /start.")]


def build_not_allowed_message() -> list[dict[str, Any]]:
    return [_text_message("Этот аккаунт не может пользоваться ботом.")]
