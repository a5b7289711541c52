# UI.py
""""PySide6 user interface for the Formula Calculator.

Structure
---------
- Calculator UI: main window with formula input, rendered formula, one input
  field per variable and the result
- Settings UI: modal dialog for user preferences

Responsibilities (Calculator)
-----------------------------
- Keep the current FormulaState snapshot and replace it on every edit
- Regenerate the variable fields whenever the set of identifiers changes
- Show the rendered formula (Qt rich text understands <sup>/<sub>)
- Show the result, or "Error" with the details as tooltip
- Clipboard integration (Shift + Copy copies the formula instead of the result)

Responsibilities (Settings)
---------------------------
- Load Current Settings and Settings Descriptions via Config_Manager
- Validate user input (e.g. minimum decimal places)
- Save and apply theme changes immediately

Threading Note
--------------
Parsing and evaluating a formula is short and runs directly on the UI thread.
"""""

# Ui.py
from PySide6 import QtWidgets
from PySide6.QtCore import Qt, Signal
import sys
import pyperclip
from . import error as E  # Imports error.py as a module
from . import config_manager as config_manager  # Imports config_manager.py as a module
from . import MathEngine as MathEngine  # Imports MathEngine.py as a module
from . import RenderEngine as RenderEngine
from .formula_state import FormulaState


class ClickableLabel(QtWidgets.QLabel):
    """QLabel that emits 'clicked' on a left mouse press (used for copy on click)."""

    clicked = Signal()

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit()
        super().mousePressEvent(event)


class SettingsDialog(QtWidgets.QDialog):
    """""

    This class is responsible for managing the settings window, saving the new settings and opening an error
    message if something went wrong.

    All of the Settings can be seperated into two categories:
    1. Checkboxes   (Managed with True or False)
    2. Input Fields (Managed as an Integer)

    """""

    settings_saved = Signal()  # Signal to tell the main window to update

    def __init__(self, parent=None):
        super().__init__(parent)
        self.widgets = {}  # Setting key -> widget, used when saving

        # --- 1. Window Setup ---
        self.setWindowTitle("Calculator Settings")
        self.setMinimumSize(300, 200)

        main_layout = QtWidgets.QVBoxLayout(self)

        # --- 2. Load Settings ---
        self.setting_value_list = config_manager.load_setting_value("all")
        self.setting_description_list = config_manager.load_setting_description("all")

        # --- 3. Build Widgets ---
        for key_value, value in self.setting_value_list.items():
            description = self.setting_description_list.get(key_value, key_value)

            # --- 3a. Checkbox Builder (for Boolean settings) ---
            if isinstance(value, bool):
                checkbox = QtWidgets.QCheckBox(description)
                checkbox.setChecked(value)
                main_layout.addWidget(checkbox)
                self.widgets[key_value] = checkbox

            # --- 3b. Input Field Builder (for Integer settings) ---
            elif isinstance(value, int):
                row_h_layout = QtWidgets.QHBoxLayout()
                main_layout.addLayout(row_h_layout)
                label = QtWidgets.QLabel(description + " (min. 2):")
                input_field = QtWidgets.QLineEdit()
                input_field.setPlaceholderText(str(value))  # Show current value as placeholder

                row_h_layout.addWidget(label)
                row_h_layout.addWidget(input_field)
                row_h_layout.setStretch(1, 1)
                self.widgets[key_value] = input_field

        # --- 4. OK / Cancel Buttons ---
        button_box = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.StandardButton.Ok | QtWidgets.QDialogButtonBox.StandardButton.Cancel)
        main_layout.addWidget(button_box)
        main_layout.addStretch(1)

        button_box.accepted.connect(lambda: self.save_settings(self.setting_value_list))
        button_box.rejected.connect(self.reject)

        self.update_darkmode()

    def save_settings(self, setting_value_list):
        for key_value, widget in self.widgets.items():

            # --- 1. Handle Checkboxes ---
            if isinstance(widget, QtWidgets.QCheckBox):
                setting_value_list[key_value] = widget.isChecked()

            # --- 2. Handle Input Fields (like 'decimal_places') ---
            elif isinstance(widget, QtWidgets.QLineEdit):
                new_value_str = widget.text().strip()

                # If user left it blank, keep the old value
                if new_value_str == "":
                    continue

                try:
                    new_value_int = int(new_value_str)
                    if key_value == "decimal_places" and new_value_int < 2:
                        raise ValueError(f"'{new_value_int}' is too small. Minimum is 2.")
                    setting_value_list[key_value] = new_value_int

                except ValueError as e:
                    # Show an error box and STOP the save process
                    print(f"Invalid Input: {e}")
                    QtWidgets.QMessageBox.critical(self, "Invalid Input:",
                                                   f"Error in input for '{key_value}':\n\n{e}\n\nPlease correct your input.")
                    return

        # --- 3. Write to File ---
        saved_settings = config_manager.save_setting(setting_value_list)

        if saved_settings != {}:
            self.settings_saved.emit()
            self.accept()
        else:
            QtWidgets.QMessageBox.critical(self, "Error",
                                           f"Error 5001: {E.ERROR_MESSAGES['5001']}")

    def update_darkmode(self):
        if self.setting_value_list["darkmode"] == True:
            self.setStyleSheet("""
                        QDialog {background-color: #121212;}
                        QLabel {color: white;}
                        QCheckBox {color: white;}
                        QLineEdit {background-color: #444444;color: white;border: 1px solid #666666;}
                        QDialogButtonBox QPushButton {background-color: #666666;color: white;}""")
        else:
            self.setStyleSheet("")


class FormulaCalculator(QtWidgets.QWidget):
    shift_is_held = False

    def __init__(self):
        super().__init__()

        # --- 1. Load Settings ---
        self.setting_value_list = config_manager.load_setting_value("all")
        MathEngine.debug = self.setting_value_list["debug"] == True

        # --- 2. Instance State ---
        self.state = FormulaState()
        self.variable_fields = {}  # Variable name -> QLineEdit
        self.result_text = ""

        # --- 3. Window Setup ---
        self.setWindowTitle("Formula Calculator")
        self.resize(420, 360)
        main_v_layout = QtWidgets.QVBoxLayout(self)

        title = QtWidgets.QLabel("Formula Calculator")
        font = title.font()
        font.setPointSize(18)
        font.setBold(True)
        title.setFont(font)
        main_v_layout.addWidget(title)

        # --- 4. Formula Input and Rendered Formula ---
        self.formula_input = QtWidgets.QLineEdit()
        self.formula_input.setPlaceholderText("Enter formula")
        self.formula_input.textChanged.connect(self.handle_formula_change)
        main_v_layout.addWidget(self.formula_input)

        self.formula_display = QtWidgets.QLabel()
        self.formula_display.setTextFormat(Qt.TextFormat.RichText)
        font = self.formula_display.font()
        font.setPointSize(16)
        self.formula_display.setFont(font)
        main_v_layout.addWidget(self.formula_display)

        # --- 5. Variable Fields (rebuilt when identifiers change) ---
        self.variables_container = QtWidgets.QWidget()
        self.variables_layout = QtWidgets.QFormLayout(self.variables_container)
        main_v_layout.addWidget(self.variables_container)

        # --- 6. Result ---
        self.result_label = ClickableLabel()
        font = self.result_label.font()
        font.setPointSize(16)
        self.result_label.setFont(font)
        self.result_label.clicked.connect(self.handle_result_clicked)
        main_v_layout.addWidget(self.result_label)
        main_v_layout.addStretch(1)

        # --- 7. Buttons ---
        button_row = QtWidgets.QHBoxLayout()
        main_v_layout.addLayout(button_row)
        self.button_objects = {}
        for text, handler in (("⚙️", self.open_settings),
                              ("📋", self.handle_copy),
                              ("Reset", self.handle_reset)):
            button = QtWidgets.QPushButton(text)
            button.clicked.connect(handler)
            button_row.addWidget(button)
            self.button_objects[text] = button

        self.update_darkmode()

    # --- Key Event Handlers ---
    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Shift:
            self.shift_is_held = True
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event):
        if event.key() == Qt.Key.Key_Shift:
            self.shift_is_held = False
        super().keyReleaseEvent(event)

    # --- Edit Handlers ---
    def handle_formula_change(self, text):
        old_state = self.state
        self.state = old_state.with_formula(text)
        if self.state.identifiers_changed(old_state):
            self.rebuild_variable_fields()
        self.update_result()

    def handle_variable_change(self, name, text):
        self.state = self.state.with_variable(name, text)
        self.update_result()

    def handle_reset(self):
        self.state = self.state.reset()
        self.formula_input.blockSignals(True)
        self.formula_input.setText("")
        self.formula_input.blockSignals(False)
        self.rebuild_variable_fields()
        self.formula_display.setText("")
        self.result_label.setText("")
        self.result_label.setToolTip("")
        self.result_text = ""

    def rebuild_variable_fields(self):
        while self.variables_layout.rowCount() > 0:
            self.variables_layout.removeRow(0)
        self.variable_fields = {}

        for name, value in self.state.variables.items():
            field = QtWidgets.QLineEdit(f"{value:g}")
            field.textEdited.connect(lambda text, name=name: self.handle_variable_change(name, text))
            label = QtWidgets.QLabel(RenderEngine.render_identifier(name) + ":")
            label.setTextFormat(Qt.TextFormat.RichText)
            self.variables_layout.addRow(label, field)
            self.variable_fields[name] = field

    # --- Result Display ---
    def update_result(self):
        self.formula_display.setText(self.state.rendered())
        result = self.state.result()
        self.result_text = MathEngine.display_result(
            result,
            self.setting_value_list["decimal_places"],
            self.setting_value_list["fractions"],
        )
        self.result_label.setText(self.result_text)

        if isinstance(result, E.MathError):
            error_code = result.code
            details = f"Error {error_code}: {E.ERROR_MESSAGES.get(error_code, 'Unknown error')}\nDetails: {result.message}"
            self.result_label.setToolTip(details)
            if self.setting_value_list["debug"] == True:
                print(f"{details}\nEquation: {result.equation}")
        else:
            self.result_label.setToolTip("")
        self.update_result_style(isinstance(result, E.MathError))

    def update_result_style(self, is_error):
        if is_error:
            self.result_label.setStyleSheet("color: #d32f2f; font-weight: bold;")
        elif self.setting_value_list["darkmode"] == True:
            self.result_label.setStyleSheet("color: white; font-weight: bold;")
        else:
            self.result_label.setStyleSheet("font-weight: bold;")

    # --- Clipboard ---
    def handle_copy(self):
        if self.shift_is_held:
            pyperclip.copy(self.state.rendered("unicode"))
        elif isinstance(self.state.result(), float):
            pyperclip.copy(self.result_text.split(" ", 1)[-1])

    def handle_result_clicked(self):
        if self.setting_value_list["copy_on_click"] == True:
            self.handle_copy()

    # --- Settings / Theme ---
    def open_settings(self):
        settings_dialog = SettingsDialog(self)
        settings_dialog.exec()  # "exec" makes the dialog modal (blocks main window)

        # --- Reload settings after dialog closes ---
        self.setting_value_list = config_manager.load_setting_value("all")
        MathEngine.debug = self.setting_value_list["debug"] == True
        self.update_darkmode()
        if self.state.formula:
            self.update_result()

    def update_darkmode(self):
        if self.setting_value_list["darkmode"] == True:
            self.setStyleSheet("""
                        QWidget {background-color: #121212; color: white;}
                        QLineEdit {background-color: #444444; color: white; border: 1px solid #666666;}
                        QPushButton {background-color: #2e2e2e; color: white; font-weight: bold;}""")
        else:
            self.setStyleSheet("")
        self.update_result_style(self.result_text == "Error")


def main():
    # --- Main Application Entry Point ---
    app = QtWidgets.QApplication(sys.argv)
    window = FormulaCalculator()
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
