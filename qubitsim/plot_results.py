# qubitsim/plot_results.py
import csv, os
from collections import defaultdict
from statistics import median
import matplotlib.pyplot as plt

DATA_DIR = os.path.join(os.path.dirname(__file__), "..", "data")

def load_rows(path):
    rows = []
    with open(path, "r") as f:
        for row in csv.DictReader(f):
            row["qubits"]  = int(row["qubits"])
            row["depth"]   = int(row["depth"])
            row["threads"] = int(row["threads"])
            row["wall_ms"] = float(row["wall_ms"])
            rows.append(row)
    return rows

def median_by_key(rows, key_fields):
    buckets = defaultdict(list)
    for r in rows:
        buckets[tuple(r[k] for k in key_fields)].append(r["wall_ms"])
    agg = []
    for key, vals in buckets.items():
        out = dict(zip(key_fields, key))
        out["wall_ms"] = float(median(vals))
        agg.append(out)
    return agg

def plot_runtime(rows, xfield, out_png, title):
    """One line per backend/mode: median wall time against xfield."""
    lines = defaultdict(list)
    for r in median_by_key(rows, [xfield, "backend", "mode"]):
        lines[f'{r["backend"]}/{r["mode"]}'].append((r[xfield], r["wall_ms"]))
    if not lines:
        return None
    plt.figure()
    for label, pts in lines.items():
        xs, ys = zip(*sorted(pts))
        plt.plot(xs, ys, marker="o", label=label)
    plt.xlabel(xfield)
    plt.ylabel("Runtime (ms, log scale)")
    plt.yscale("log")
    plt.title(title)
    plt.grid(True, which="both", ls="--", lw=0.5)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=200)
    plt.close()
    return out_png

def plot_speedup_vs_threads(rows, out_png):
    pts = sorted(median_by_key(rows, ["threads"]), key=lambda r: r["threads"])
    t1 = next((r["wall_ms"] for r in pts if r["threads"] == 1), None)
    if not t1:
        return None
    plt.figure()
    plt.plot([r["threads"] for r in pts], [t1 / r["wall_ms"] for r in pts], marker="o")
    plt.xlabel("Threads")
    plt.ylabel("Speedup (T1/Tt)")
    plt.title("Speedup vs Threads [numba]")
    plt.grid(True)
    plt.savefig(out_png, dpi=200)
    plt.close()
    return out_png

def main(data_dir=None):
    data_dir = data_dir or DATA_DIR
    csvs = []
    for root, _, files in os.walk(data_dir):
        csvs.extend(os.path.join(root, f) for f in files if f.endswith(".csv"))
    if not csvs:
        print(f"No CSV files found under {data_dir}")
        return []

    saved = []
    for path in sorted(csvs):
        tag = os.path.splitext(os.path.basename(path))[0]
        rows = load_rows(path)
        print(f"Plotting from {path} ({len(rows)} rows)...")
        out = os.path.join(os.path.dirname(path), f"{tag}.png")
        if tag.startswith("threads"):
            png = plot_speedup_vs_threads(rows, out)
        elif tag.startswith("depth"):
            png = plot_runtime(rows, "depth", out, f"Runtime vs Depth [{tag}]")
        else:
            png = plot_runtime(rows, "qubits", out, f"Runtime vs Qubits [{tag}]")
        if png:
            saved.append(png)
    print(f"\nSaved {len(saved)} plots under {data_dir}")
    return saved

if __name__ == "__main__":
    main()
