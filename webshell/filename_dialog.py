from __future__ import annotations

from typing import Optional

from PyQt5.QtCore import Qt
from PyQt5.QtWidgets import (
    QDialog, QDialogButtonBox, QLabel, QLineEdit, QMessageBox, QVBoxLayout, QWidget
)


class FileNameDialog(QDialog):
    """Спрашивает имя файла (без пути) для загрузки."""

    def __init__(self, suggested_name: str, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.setWindowTitle("Сохранить файл")
        self.setWindowFlags(self.windowFlags() & ~Qt.WindowContextHelpButtonHint)
        self.setMinimumWidth(420)
        self.file_name_result = ""

        root = QVBoxLayout(self)
        root.setContentsMargins(16, 16, 16, 12)
        root.addWidget(QLabel("Имя файла:", self))

        self.name_edit = QLineEdit(suggested_name or "", self)
        root.addWidget(self.name_edit)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel, self)
        buttons.accepted.connect(self._on_save)
        buttons.rejected.connect(self.reject)
        root.addWidget(buttons)

        # выделяем предложенное имя, чтобы его можно было сразу перепечатать
        self.name_edit.selectAll()
        self.name_edit.setFocus()

    def _on_save(self):
        name = self.name_edit.text().strip()
        if not name:
            QMessageBox.warning(self, "Ошибка", "Имя файла не может быть пустым.")
            return
        self.file_name_result = name
        self.accept()

    @staticmethod
    def ask(suggested_name: str, parent: Optional[QWidget] = None) -> Optional[str]:
        dlg = FileNameDialog(suggested_name, parent)
        if dlg.exec_() == QDialog.Accepted:
            return dlg.file_name_result
        return None
