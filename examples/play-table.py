import pyarrow.compute as pc

from statground import LabeledTable
from statground.compute import FunctionCallExpression, MeanAggregation, SumAggregation, col

shops = LabeledTable.from_records(
    [
        {"city": "Rome", "shop": "Shop 1", "sold": 120, "employees": 4},
        {"city": "Oslo", "shop": "Shop 2", "sold": 80, "employees": 3},
        {"city": "Rome", "shop": "Shop 3", "sold": 200, "employees": 6},
        {"city": "Milan", "shop": "Shop 4", "sold": None, "employees": 2},
        {"city": "Oslo", "shop": "Shop 5", "sold": 95, "employees": 3},
    ]
)

in_rome = shops.where(FunctionCallExpression(pc.equal, col("city"), "Rome"))
print(in_rome.to_records())

best = shops.dropna().sort_by("sold", ascending=False).head(3)
print(best.index, best["shop"].to_pylist())

by_city = shops.aggregate(
    "city", {"total_sold": SumAggregation("sold"), "avg_employees": MeanAggregation("employees")}
)
print(by_city.to_dict())

print(shops.describe().to_dict())
