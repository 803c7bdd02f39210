import sys, os
sys.path.append(os.path.join(os.path.dirname(__file__), "src"))

from nfix_ml.pipeline import main

if __name__ == "__main__":
    sys.exit(main())
