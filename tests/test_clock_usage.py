import importlib.util
import tempfile
import unittest
from pathlib import Path


SCRIPT = Path(__file__).resolve().parents[1] / 'scripts' / 'check_clock_usage.py'


def _load_checker():
    spec = importlib.util.spec_from_file_location('check_clock_usage', SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class ClockUsageTests(unittest.TestCase):
    def setUp(self):
        self.checker = _load_checker()

    def test_app_reads_time_only_through_provider(self):
        violations = self.checker.find_violations()
        self.assertEqual(violations, [], '\n'.join(f'{p}:{n}: {line}' for p, n, line in violations))

    def test_detects_direct_calls_outside_provider(self):
        with tempfile.TemporaryDirectory() as tmp:
            app_dir = Path(tmp) / 'app'
            (app_dir / 'core').mkdir(parents=True)
            (app_dir / 'core' / 'time_provider.py').write_text('x = datetime.now()\n', encoding='utf-8')
            (app_dir / 'service.py').write_text(
                'a = 1\n# datetime.now() in a comment\nstarted = date.today()\n',
                encoding='utf-8',
            )

            violations = self.checker.find_violations(app_dir)

        self.assertEqual(violations, [('app/service.py', 3, 'started = date.today()')])


if __name__ == '__main__':
    unittest.main()
