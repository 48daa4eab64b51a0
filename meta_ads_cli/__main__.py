import sys

from meta_ads_cli.main import main

sys.exit(main())
