import sys

from albumen.cli import main

sys.exit(main())
