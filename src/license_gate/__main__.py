from license_gate.cli import main

raise SystemExit(main())
