class RanklistError(Exception):
    """Базовая ошибка импорта рейтинговых списков."""


class UnsupportedFormatError(RanklistError, ValueError):
    """Расширение файла не .xls / .xlsx — разбор даже не начинается."""

    def __init__(self, path: str):
        super().__init__(f"Unsupported file type: {path}")
        self.path = path


class ParserLoopError(RanklistError, RuntimeError):
    """Ячейка потребовала больше повторных разборов, чем допускает граф состояний."""
