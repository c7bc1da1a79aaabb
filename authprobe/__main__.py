import sys

from authprobe.cli.main import main

sys.exit(main())
