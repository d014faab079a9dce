from nushell_lsp.server import main

main()
