from scriptwriters.cli import main

raise SystemExit(main())
