from spiromint.cli import main

raise SystemExit(main())
