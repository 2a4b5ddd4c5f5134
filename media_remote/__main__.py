import sys

from media_remote.cli import main

sys.exit(main())
