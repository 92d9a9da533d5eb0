from statground import LabeledTable
from statground.stats import inference, mathops

data = LabeledTable(
    {
        "hours": [1, 2, 3, 4, 5, 6, 7, 8],
        "score": [52, 55, 61, 64, 70, 71, 78, 83],
        "group": ["a", "b", "a", "b", "a", "b", "a", "b"],
    }
)

print(mathops.corr(data, method="spearman").to_dict())
print(mathops.rolling_mean(data, 3, columns="score")["score"].to_pylist())

regression = inference.linear_regression(data["hours"], data["score"])
print(f"score = {regression.intercept:.2f} + {regression.slope:.2f} * hours (R2={regression.r_squared:.3f})")

groups = data.group_by("group")
print(inference.t_test(groups["a"]["score"], groups["b"]["score"], equal_var=False))
print(inference.normality_test(data["score"], test="shapiro"))
print(inference.descriptive_stats(data["score"]))
