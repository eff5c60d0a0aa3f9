from typing import Callable

from utils.logger import get_logger
from utils.prompt import confirm

REBOOT_ASK = "ask"
REBOOT_ALWAYS = "always"
REBOOT_NEVER = "never"
REBOOT_POLICIES = [REBOOT_ASK, REBOOT_ALWAYS, REBOOT_NEVER]

BANNER = (
    "###############################################\n"
    "# Full version upgrade complete. Reboot now? #\n"
    "###############################################"
)


class RebootUpdater:

    @staticmethod
    def prompt_reboot(system, policy: str = REBOOT_ASK,
                      input_func: Callable[[str], str] = input) -> bool:
        """Offer a reboot after a release change; returns True if one was issued"""
        logger = get_logger()

        assume = None
        if policy == REBOOT_ALWAYS:
            assume = True
        elif policy == REBOOT_NEVER:
            assume = False
        else:
            print(BANNER)

        answer = confirm("(y/n): ", assume=assume, input_func=input_func)
        if not answer.confirmed:
            logger.info("Please reboot manually later to apply changes.")
            return False

        logger.info("Rebooting...")
        exit_code, _, stderr = system.execute_command("reboot", needs_sudo=True)
        # A remote reboot may drop the session before the exit status arrives
        if exit_code != 0:
            logger.warning(f"reboot returned {exit_code}: {stderr.strip()}")
        return True
