# qubitsim/bench.py
import argparse, csv, os, socket, subprocess, time, platform
from datetime import datetime
import numpy as np
from .circuit import Circuit
from .register import Register

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

HEADER = ["qubits","depth","backend","mode","threads","gates","wall_ms","hostname","commit","dtype","timestamp"]

def backend_dir(backend):
    path = os.path.join(DATA_DIR, backend)
    os.makedirs(path, exist_ok=True)
    return path

def meta_row():
    commit = ""
    try:
        commit = subprocess.check_output(["git", "rev-parse", "--short", "HEAD"],
                                         stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        pass
    return {
        "hostname": socket.gethostname(),
        "commit": commit,
        "dtype": "complex64",
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "python": platform.python_version(),
    }

def new_csv(path):
    """Create/overwrite CSV with header."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", newline="") as f:
        csv.DictWriter(f, fieldnames=HEADER).writeheader()

def write_row(path, row):
    with open(path, "a", newline="") as f:
        csv.DictWriter(f, fieldnames=HEADER, extrasaction="ignore").writerow(row)

# ---------------------------------------------------------------------

def random_circuit(n, depth, seed=0):
    """Alternating layers: H/X on every qubit, then CNOT/CZ on neighbour pairs."""
    rng = np.random.default_rng(seed)
    c = Circuit.empty(n)
    for layer in range(depth):
        if layer % 2 == 0:
            for k in range(n):
                if rng.integers(0, 2) == 0:
                    c.h(k)
                else:
                    c.x(k)
        else:
            for k in range(0, n-1, 2):
                g = rng.integers(0, 3)
                if g == 0:
                    c.cnot(k, k+1)
                elif g == 1:
                    c.cnot(k+1, k)
                else:
                    c.cz(k, k+1)
    return c

def time_run(circ, backend, mode="local", threads=None):
    """Wall time in ms. mode='local' uses the 2x2 kernels, 'dense' one full operator per gate."""
    t0 = time.perf_counter()
    if mode == "local":
        circ.run(backend=backend, dtype=np.complex64, num_threads=threads, check_norm=False)
    else:
        st = Register.zero(circ.n, backend=backend, dtype=np.complex64)
        for name, args in circ.ops:
            st.apply(circ._gate(name, args, np.complex64))
    return (time.perf_counter() - t0) * 1e3

def warmup(circ, backend, mode="local"):
    # one dummy run to JIT-compile & warm caches
    time_run(circ, backend, mode)

def numba_max_threads():
    from .apply_numba import get_threads
    return get_threads()

def _row(n, depth, backend, mode, threads, circ, wall):
    m = meta_row()
    return {
        "qubits": n, "depth": depth, "backend": backend, "mode": mode, "threads": threads,
        "gates": len(circ.ops), "wall_ms": f"{wall:.3f}", **m,
    }

# ---------------------------------------------------------------------
# individual experiments

def bench_qubits(ns, depth, backend, mode, out_path):
    print(f"[run] Qubits scaling → {out_path}")
    new_csv(out_path)
    threads = 0 if backend == "serial" else numba_max_threads()
    warmup(random_circuit(min(ns), depth, seed=42), backend, mode)
    for n in ns:
        circ = random_circuit(n, depth, seed=42)
        wall = time_run(circ, backend, mode)
        write_row(out_path, _row(n, depth, backend, mode, threads, circ, wall))
        print(f"  n={n}  wall={wall:.2f} ms")
    print("✓ done.\n")

def bench_threads(n, depth, threads_list, out_path):
    print(f"[run] Thread scaling → {out_path}")
    new_csv(out_path)
    from .apply_numba import set_threads
    circ = random_circuit(n, depth, seed=123)
    pool = numba_max_threads()
    warmup(circ, "numba")
    t1 = time_run(circ, "numba", threads=1)
    print(f"  pool={pool}  T1={t1:.1f} ms")

    for t in threads_list:
        tt = min(int(t), pool)
        if tt != t:
            print(f"  requested t={t} > pool={pool}; using t={tt}")
        set_threads(tt)
        wall = time_run(circ, "numba", threads=tt)
        speedup = t1 / wall if wall > 0 else float("nan")
        write_row(out_path, _row(n, depth, "numba", "local", tt, circ, wall))
        print(f"  t={tt}  wall={wall:.2f} ms  speedup={speedup:.2f}×")
    set_threads(pool)
    print("✓ done.\n")

def bench_depth(n, depths, backend, mode, out_path):
    print(f"[run] Depth scaling → {out_path}")
    new_csv(out_path)
    threads = 0 if backend == "serial" else numba_max_threads()
    warmup(random_circuit(n, min(depths), seed=7), backend, mode)
    for d in depths:
        circ = random_circuit(n, d, seed=7)
        wall = time_run(circ, backend, mode)
        write_row(out_path, _row(n, d, backend, mode, threads, circ, wall))
        print(f"  depth={d}  wall={wall:.2f} ms")
    print("✓ done.\n")

# ---------------------------------------------------------------------
def build_parser():
    p = argparse.ArgumentParser(description="qubitsim benchmarks → data/<backend>/*.csv")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_qubits = sub.add_parser("qubits")
    p_qubits.add_argument("--ns", type=str, required=True)
    p_qubits.add_argument("--depth", type=int, default=100)
    p_qubits.add_argument("--backend", type=str, default="numba", choices=["serial","numba"])
    p_qubits.add_argument("--mode", type=str, default="local", choices=["local","dense"])

    p_threads = sub.add_parser("threads")
    p_threads.add_argument("--n", type=int, default=16)
    p_threads.add_argument("--depth", type=int, default=200)
    p_threads.add_argument("--threads", type=str, default="1,2,4,8,16")

    p_depth = sub.add_parser("depth")
    p_depth.add_argument("--n", type=int, default=12)
    p_depth.add_argument("--depths", type=str, default="10,50,100,300,600")
    p_depth.add_argument("--backend", type=str, default="numba", choices=["serial","numba"])
    p_depth.add_argument("--mode", type=str, default="local", choices=["local","dense"])
    return p

def main(argv=None):
    args = build_parser().parse_args(argv)

    if args.cmd == "qubits":
        ns = [int(x) for x in args.ns.split(",")]
        out_path = os.path.join(backend_dir(args.backend), f"qubits_{args.mode}.csv")
        bench_qubits(ns, args.depth, args.backend, args.mode, out_path)

    elif args.cmd == "threads":
        ts = [int(x) for x in args.threads.split(",")]
        out_path = os.path.join(backend_dir("numba"), "threads.csv")
        bench_threads(args.n, args.depth, ts, out_path)

    elif args.cmd == "depth":
        ds = [int(x) for x in args.depths.split(",")]
        out_path = os.path.join(backend_dir(args.backend), f"depth_{args.mode}.csv")
        bench_depth(args.n, ds, args.backend, args.mode, out_path)

if __name__ == "__main__":
    main()
