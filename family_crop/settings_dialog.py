"""
Settings dialog: server address, session cookie and request timeout.

Takes a ``Settings`` instance as input and returns the edited copy on
accept via ``get_settings()``.  OK stays disabled while the form is invalid.
"""

from dataclasses import replace

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QLineEdit, QDoubleSpinBox,
    QDialogButtonBox, QLabel, QWidget,
)

from family_crop.settings import Settings, validate_settings

_STYLE_ERROR = "border: 2px solid #d32f2f;"
_STYLE_NORMAL = ""


class SettingsDialog(QDialog):
    def __init__(self, settings: Settings, parent: QWidget | None = None):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setMinimumWidth(420)
        self._original = settings

        layout = QVBoxLayout(self)
        form = QFormLayout()

        self._base_url = QLineEdit(settings.base_url)
        self._base_url.setPlaceholderText("https://family.example.org")
        self._base_url.textChanged.connect(self._validate)
        form.addRow("Server address:", self._base_url)

        self._cookie_name = QLineEdit(settings.session_cookie_name)
        self._cookie_name.textChanged.connect(self._validate)
        form.addRow("Session cookie name:", self._cookie_name)

        self._cookie_value = QLineEdit(settings.session_cookie)
        self._cookie_value.setEchoMode(QLineEdit.EchoMode.Password)
        self._cookie_value.setToolTip("Copy the value from a logged-in browser session")
        self._cookie_value.textChanged.connect(self._validate)
        form.addRow("Session cookie:", self._cookie_value)

        self._timeout = QDoubleSpinBox()
        self._timeout.setRange(1, 600)
        self._timeout.setSuffix(" s")
        self._timeout.setValue(float(settings.timeout))
        form.addRow("Timeout:", self._timeout)
        layout.addLayout(form)

        self._error_label = QLabel("")
        self._error_label.setStyleSheet("color: #d32f2f;")
        self._error_label.setWordWrap(True)
        layout.addWidget(self._error_label)

        self._buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        self._buttons.accepted.connect(self.accept)
        self._buttons.rejected.connect(self.reject)
        layout.addWidget(self._buttons)

        self._validate()

    def get_settings(self) -> Settings:
        return replace(
            self._original,
            base_url=self._base_url.text().strip(),
            session_cookie_name=self._cookie_name.text().strip(),
            session_cookie=self._cookie_value.text().strip(),
            timeout=self._timeout.value(),
        )

    def _validate(self):
        errors = validate_settings(self.get_settings())
        url_bad = any(e.startswith("base_url") for e in errors)
        self._base_url.setStyleSheet(_STYLE_ERROR if url_bad else _STYLE_NORMAL)
        self._error_label.setText("\n".join(errors))
        self._buttons.button(QDialogButtonBox.StandardButton.Ok).setEnabled(not errors)
