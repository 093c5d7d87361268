from dotenv import load_dotenv

from draftkeeper.cli.commands import app
from draftkeeper.utils.helpers import get_data_path

# Load .env file from the data dir if it exists
# Precedence: existing env vars > .env file (override=False)
load_dotenv(get_data_path() / ".env", override=False)

if __name__ == "__main__":
    app()
