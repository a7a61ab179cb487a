"""Allow `python -m sharepoint_pdf init | run <file_path>`."""

import sys

from .cli import main

sys.exit(main())
