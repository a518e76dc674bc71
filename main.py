# main.py

from udprecord.runtime.app import main


if __name__ == "__main__":
    main()
