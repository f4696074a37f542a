from confseal.cli import main

raise SystemExit(main())
