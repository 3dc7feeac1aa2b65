from debian_maintenance.cli import main

if __name__ == "__main__":
    main()
