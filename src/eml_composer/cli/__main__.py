import sys

from eml_composer.cli.compose import main

sys.exit(main())
