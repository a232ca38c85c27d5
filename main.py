import sys

from PyQt5.QtWidgets import QApplication

from pdfdesk.ui import EditorWindow
from pdfdesk.utils import EditorSettings, setup_logging


def main():
    """
    Start the PDFDesk editor.

    An optional PDF path may be passed as the first command-line argument.
    """
    settings = EditorSettings.from_env()
    setup_logging(settings.log_level)

    app = QApplication(sys.argv)

    file_path = None
    if len(sys.argv) > 1:
        file_path = sys.argv[1]

    window = EditorWindow(settings, file_path)
    window.showMaximized()
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()
