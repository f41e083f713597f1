import sys

from surveytext.cli import main

sys.exit(main())
