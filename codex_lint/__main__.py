from codex_lint.cli import main


raise SystemExit(main())
