"""Entry point for the iamyouare debug server."""

from iamyouare.bootstrap import main

if __name__ == "__main__":
    main()
