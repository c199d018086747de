# Author      : Tyson Limato
# Date        : 2025-7-3
# File Name   : example_data_generator.py
import random


def generate_cluster_data(num_clusters=15, points_per_cluster=350, spread=40000,
                          extent=1000000, filename="s2.txt", seed=None):
    """
    Generate a synthetic 2-D clustering dataset for classroom teaching.

    Each row is "label x y": the label is the index of the generating cluster
    and x, y are integer coordinates drawn from a Gaussian around a random
    center inside [0, extent).
    """
    rnd = random.Random(seed)
    centers = [(rnd.uniform(0, extent), rnd.uniform(0, extent)) for _ in range(num_clusters)]

    rows = []
    for label, (cx, cy) in enumerate(centers):
        for _ in range(points_per_cluster):
            x = int(round(rnd.gauss(cx, spread)))
            y = int(round(rnd.gauss(cy, spread)))
            rows.append((label, x, y))
    rnd.shuffle(rows)

    with open(filename, mode='w') as file:
        for label, x, y in rows:
            file.write(f"{label} {x} {y}\n")

    print(f"Dataset with {len(rows)} points in {num_clusters} clusters saved as '{filename}'")
    return rows


# Run the function
if __name__ == "__main__":
    generate_cluster_data()
