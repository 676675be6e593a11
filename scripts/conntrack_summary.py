#!/usr/bin/env python3
"""Run `nattrack summary --json` over one or more conntrack tables and print the results."""
import json
import os
import subprocess
import sys
from glob import glob


def find_python():
    venv_py = os.path.join('.venv', 'bin', 'python')
    if os.path.exists(venv_py):
        return venv_py
    return sys.executable


def run_cli_on(source):
    py = find_python()
    cmd = [py, '-m', 'nattrack.cli', 'summary', '--source', source, '--json']
    proc = subprocess.run(cmd, capture_output=True, text=True)
    return proc.returncode, proc.stdout, proc.stderr


def main(argv=None):
    sources = list(argv if argv is not None else sys.argv[1:])
    if not sources:
        sources = sorted(glob(os.path.join('tests', 'data', '*conntrack*')))
    if not sources:
        print('No conntrack tables given or found under tests/data')
        return 0

    results = []
    for source in sources:
        rc, out, err = run_cli_on(source)
        entry = {'source': source, 'rc': rc}
        if rc != 0:
            entry['error'] = err.strip() or out.strip()
            results.append(entry)
            continue
        try:
            entry['summary'] = json.loads(out)
        except ValueError as e:
            entry['error'] = f'failed to read output: {e}'
        results.append(entry)

    print(json.dumps(results, indent=2))
    return 0 if all(r['rc'] == 0 for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
