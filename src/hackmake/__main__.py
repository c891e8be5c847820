from hackmake.cli import main

raise SystemExit(main())
