from homedash_sidecar.main import main

main()
