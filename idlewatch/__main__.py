import sys

from idlewatch.main import main

sys.exit(main())
