import logging
import sys

from tpm2_tsskey import TPMKey, TSSKeyError
from tpm2_tsskey.encoding import to_yaml

# highlight using ANSI color codes
green = "\x1b[32m"
yellow = "\x1b[93m"
red = "\x1b[31m"
blue = "\x1b[34m"
cyan = "\x1b[96m"
light_grey = "\x1b[37m"
reset = "\x1b[0m"

# setup logging
root_logger = logging.getLogger()
root_logger.setLevel(logging.NOTSET)
handler = logging.StreamHandler()
formatter = logging.Formatter(
    f"{light_grey}[%(levelname)s]{reset} {blue}%(pathname)s:%(lineno)d{reset} - {cyan}%(name)s {yellow}%(message)s{reset}",
    "%Y-%m-%d %H:%M:%S",
)
handler.setFormatter(formatter)
root_logger.addHandler(handler)

logging.getLogger("tpm2_tsskey").setLevel(logging.DEBUG)

if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit(f"usage: {sys.argv[0]} <key.pem>")

    with open(sys.argv[1], "rb") as f:
        data = f.read()

    try:
        key = TPMKey.from_pem(data)
    except TSSKeyError as e:
        root_logger.error(f"{red}unable to load {sys.argv[1]}: {e}{reset}")
        sys.exit(1)

    print(to_yaml(key), end="")
    # re-encoding normalizes booleans and drops default fields
    if key.to_pem() != data:
        root_logger.info(f"{green}re-encoded key differs from input{reset}")
