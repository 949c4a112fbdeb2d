import sys

from .build_sdk import main

sys.exit(main())
