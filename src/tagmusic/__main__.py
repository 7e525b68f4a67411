import sys

from tagmusic.cli import main

sys.exit(main())
