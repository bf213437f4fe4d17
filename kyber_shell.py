import argparse
import logging
import sys

from kyber_constants import PARAMETER_SETS, DEFAULT_LEVEL, get_params
from kyber_pke import KyberError
from kyber_session import KyberSession

HELP_TEXT = """Commands:
  KEYGEN            generate A, s, e and t = A.s + e
  ENCRYPT <bit>     encrypt 0 or 1 under the current public key
  DECRYPT           decrypt the current ciphertext with s
  STATS <name>      statistics of v, e2, s[i], e[i], t[i], r[i], e1[i], u[i] or A[i][j]
  NOISE             noise left in v - s.u after removing the message
  TRIALS <n> [bit]  run n independent KeyGen/Encrypt/Decrypt rounds
  EVENTS            show the step history of this session
  RESET             forget all keys, ciphertexts and events
  EXIT"""


def run_trials(params, ops, trials, bit=1):
    """Runs full KeyGen -> Encrypt -> Decrypt rounds and returns how many recovered `bit`."""
    successes = 0
    for _ in range(trials):
        session = KyberSession(params, ops=ops)
        session.generate_keys()
        session.encrypt(bit)
        if session.decrypt() == bit:
            successes += 1
    return successes


class KyberShell:
    """Interactive front end over a single KyberSession."""
    def __init__(self, session):
        self.session = session

    def _preview(self, p):
        return f"[{p[0]}, {p[1]}, {p[2]}, ..., {p[-1]}]"

    def _handle_keygen(self, arg):
        A, t = self.session.generate_keys()
        k = len(t)
        print(f"[*] Public matrix A ({k}x{k}) and secret s generated.")
        for i, ti in enumerate(t):
            print(f"    t[{i}] = {self._preview(ti)}")

    def _handle_encrypt(self, arg):
        if not arg:
            print("[ERROR] Usage: ENCRYPT <0|1>")
            return
        try:
            bit = int(arg)
        except ValueError:
            print(f"[ERROR] Not a bit: {arg}")
            return
        u, v = self.session.encrypt(bit)
        print(f"[*] Encrypted m={bit}.")
        for i, ui in enumerate(u):
            print(f"    u[{i}] = {self._preview(ui)}")
        print(f"    v    = {self._preview(v)}")

    def _handle_decrypt(self, arg):
        bit = self.session.decrypt()
        expected = self.session.state.msg_bit
        status = "OK" if bit == expected else "DECRYPTION FAILURE"
        print(f"[*] Recovered m'={bit} (encrypted {expected}) {status}")

    def _handle_stats(self, arg):
        try:
            p = self.session.named_polynomial(arg)
        except KeyError:
            print(f"[ERROR] Unknown polynomial: {arg!r}")
            return
        stats = self.session.ops.poly_statistics(p)
        print(f"--- {arg} ---")
        print(f"  mean    : {stats['mean']:.2f}")
        print(f"  std dev : {stats['std_dev']:.2f}")
        print(f"  max/min : {stats['max']} / {stats['min']}")
        print(f"  L2 norm : {stats['norm']:.2f}")
        print(f"  ||.||inf: {self.session.ops.infinity_norm(p)} (centered)")

    def _handle_noise(self, arg):
        noise = self.session.noise()
        ops = self.session.ops
        print(f"[*] noise[0] = {noise[0]} (decoding tolerates |noise[0]| < {ops.decode_lower})")
        print(f"    ||noise||inf = {ops.infinity_norm(noise)}")

    def _handle_events(self, arg):
        if not self.session.events:
            print("[*] No events recorded.")
            return
        for ev in self.session.events:
            print(f"  {ev.timestamp:%H:%M:%S} {ev.operation.value}/{ev.step}: {ev.message}")

    def _handle_trials(self, arg):
        parts = arg.split()
        if not parts:
            print("[ERROR] Usage: TRIALS <n> [bit]")
            return
        try:
            trials = int(parts[0])
            bit = int(parts[1]) if len(parts) > 1 else 1
        except ValueError:
            print(f"[ERROR] Bad arguments: {arg}")
            return
        successes = run_trials(self.session.params, self.session.ops, trials, bit)
        print_trial_summary(successes, trials, bit)

    def handle_command(self, command_line):
        """Dispatches one command line. Returns True when the shell should stop."""
        parts = command_line.strip().split(maxsplit=1)
        command = parts[0].upper()
        arg = parts[1] if len(parts) > 1 else ""

        handlers = {
            'KEYGEN': self._handle_keygen,
            'ENCRYPT': self._handle_encrypt,
            'DECRYPT': self._handle_decrypt,
            'STATS': self._handle_stats,
            'NOISE': self._handle_noise,
            'TRIALS': self._handle_trials,
            'EVENTS': self._handle_events,
        }
        if command == 'EXIT':
            return True
        elif command == 'RESET':
            self.session.reset()
            print("[*] Session reset.")
        elif command == 'HELP':
            print(HELP_TEXT)
        elif command in handlers:
            try:
                handlers[command](arg)
            except KyberError as e:
                print(f"[ERROR] {e}")
        else:
            print(f"[ERROR] Command {command} not implemented. Type HELP.")
        return False

    def run(self):
        """Main interaction loop."""
        p = self.session.params
        print(f"[*] Toy Kyber shell ({p.name}: N={p.n}, Q={p.q}, k={p.k}, eta1={p.eta1}, eta2={p.eta2})")
        print("[*] Teaching aid only: not constant time, not a secure KEM. Type HELP.")
        while True:
            try:
                command_line = input("KYBER> ").strip()
                if not command_line: continue
                if self.handle_command(command_line):
                    break
            except EOFError:
                print("\nReceived EOF, exiting.")
                break
            except Exception as e:
                print(f"[UNEXPECTED ERROR] {e}")
                break


def print_trial_summary(successes, trials, bit):
    rate = successes / trials if trials else 0.0
    print(f"[*] {successes}/{trials} trials recovered m={bit} ({rate:.1%})")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Toy CRYSTALS-Kyber shell (teaching aid, not a secure KEM)")
    parser.add_argument("--level", choices=sorted(PARAMETER_SETS), default=DEFAULT_LEVEL,
                        help="Parameter set")
    parser.add_argument("--seed", type=int, help="Seed for reproducible sampling")
    parser.add_argument("--trials", type=int, help="Run N KeyGen/Encrypt/Decrypt rounds and exit")
    parser.add_argument("--bit", type=int, choices=[0, 1], default=1, help="Message bit for --trials")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    args = parser.parse_args(argv)

    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    session = KyberSession(get_params(args.level), seed=args.seed)
    if args.trials is not None:
        successes = run_trials(session.params, session.ops, args.trials, args.bit)
        print_trial_summary(successes, args.trials, args.bit)
        return 0 if successes == args.trials else 1

    KyberShell(session).run()
    return 0


if __name__ == '__main__':
    sys.exit(main())
