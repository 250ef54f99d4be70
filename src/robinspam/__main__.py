# =============================================================================
# robinspam Entry Point for `python -m robinspam`
# =============================================================================
# This module allows robinspam to be run as a Python module:
#
#   python -m robinspam classify "some text"
#
# This is equivalent to running the 'robinspam' command after installation.
# =============================================================================

import sys

from robinspam.app import main

if __name__ == "__main__":
    sys.exit(main())
