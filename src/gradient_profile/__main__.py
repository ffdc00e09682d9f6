from gradient_profile.cli import main

main()
