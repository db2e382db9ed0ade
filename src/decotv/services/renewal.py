"""Certificate renewal scheduling: systemd timer when present, else cron."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from decotv.constants import RENEW_CRON_LINE, RENEW_CRON_TAG, RENEW_HOOK_NAME
from decotv.errors import DecotvError
from decotv.services import renderer
from decotv.services.process import has, output_of, run


@dataclass
class RenewalScheduler:
    """Keeps ``certbot renew`` running periodically with a reload-on-change hook."""

    hook_dir: Path
    nginx_bin: str = "nginx"
    timeout: float = 30.0

    @property
    def hook_path(self) -> Path:
        return self.hook_dir / RENEW_HOOK_NAME

    def systemd_timer_available(self) -> bool:
        if not has("systemctl"):
            return False
        result = run(["systemctl", "list-unit-files", "certbot.timer"], timeout=self.timeout)
        return result.returncode == 0 and "certbot.timer" in result.stdout

    def install_hook(self) -> Path:
        """Deploy hooks run only after a certificate was actually renewed."""
        self.hook_dir.mkdir(parents=True, exist_ok=True)
        self.hook_path.write_text(renderer.render_renew_hook(self.nginx_bin))
        self.hook_path.chmod(0o755)
        return self.hook_path

    def schedule(self) -> str:
        """Install the hook and a periodic trigger. Returns "systemd" or "cron"."""
        self.install_hook()
        if self.systemd_timer_available():
            result = run(["systemctl", "enable", "--now", "certbot.timer"], timeout=self.timeout)
            if result.returncode == 0:
                return "systemd"
        self._install_cron()
        return "cron"

    def unschedule(self) -> None:
        """Remove what schedule() installed; the distro's certbot.timer is left alone."""
        if self.hook_path.exists() and renderer.is_managed_script(self.hook_path.read_text()):
            self.hook_path.unlink()
        self._remove_cron()

    def cron_installed(self) -> bool:
        return RENEW_CRON_TAG in self._read_crontab()

    # ------------------------------------------------------------------

    def _read_crontab(self) -> str:
        if not has("crontab"):
            return ""
        result = run(["crontab", "-l"], timeout=self.timeout)
        return result.stdout if result.returncode == 0 else ""

    def _write_crontab(self, lines: list[str]) -> None:
        content = "\n".join(lines) + "\n" if lines else ""
        result = run(["crontab", "-"], input=content, timeout=self.timeout)
        if result.returncode != 0:
            raise DecotvError(f"Could not update crontab:\n{output_of(result)}")

    def _install_cron(self) -> None:
        if not has("crontab"):
            raise DecotvError("Neither certbot.timer nor crontab is available to schedule renewal")
        lines = [l for l in self._read_crontab().splitlines() if RENEW_CRON_TAG not in l]
        lines.append(f"{RENEW_CRON_LINE} {RENEW_CRON_TAG}")
        self._write_crontab(lines)

    def _remove_cron(self) -> None:
        existing = self._read_crontab()
        if RENEW_CRON_TAG not in existing:
            return
        self._write_crontab([l for l in existing.splitlines() if RENEW_CRON_TAG not in l])
