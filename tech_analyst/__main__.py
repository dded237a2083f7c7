from tech_analyst.cli import main

main()
